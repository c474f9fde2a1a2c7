# transport/api.py
from django.core.exceptions import BadRequest
from django.http import HttpResponse

from core.api import json_api, parse_date_param, parse_json_body
from core.models import DocumentType, NumberingScheme
from core.pdf import render_pdf_response

from .exports import XLSX_CONTENT_TYPE, build_gst_report
from .imports import import_bilties, rows_from_json, rows_from_workbook
from .models import Bilty, Challan
from .printing import bilty_context, challan_context
from .services import BiltyService, ChallanService
from .stats import dashboard_stats
from .suggestions import suggest


# ============================================================
# Helpers (serializer-style)
# ============================================================

def _num(value):
    return float(value) if value is not None else None


def serialize_bilty(bilty: Bilty, *, with_items: bool = True, scheme: NumberingScheme | None = None) -> dict:
    """
    {
      "id": 7,
      "number": 42,
      "display_number": "GR/42",
      "bilty_date": "2025-06-01",
      ...
      "charges": {"freight": 1200.0, ..., "grand_total": 1416.0},
      "items": [{"quantity": 2.0, "goods_description": "Cloth", ...}]
    }
    """
    data = {
        "id": bilty.pk,
        "number": bilty.number,
        "display_number": bilty.format_number(scheme),
        "scope_key": bilty.scope_key,
        "bilty_date": bilty.bilty_date,
        "truck_no": bilty.truck_no,
        "from_city": bilty.from_city,
        "to_city": bilty.to_city,
        "consignor_name": bilty.consignor_name,
        "consignor_gstin": bilty.consignor_gstin,
        "consignee_name": bilty.consignee_name,
        "consignee_gstin": bilty.consignee_gstin,
        "transporter_id": bilty.transporter_id,
        "invoice_no": bilty.invoice_no,
        "eway_no": bilty.eway_no,
        "gross_value": _num(bilty.gross_value),
        "special_instruction": bilty.special_instruction,
        "total_packages": bilty.total_packages,
        "paid_by": bilty.paid_by,
        "status": bilty.status,
        "status_display": bilty.get_status_display(),
        "charges": {name: _num(value) for name, value in bilty.charges.items()},
        "created_at": bilty.created_at,
        "updated_at": bilty.updated_at,
    }
    if with_items:
        data["items"] = [
            {
                "quantity": _num(item.quantity),
                "goods_description": item.goods_description,
                "hsn_code": item.hsn_code,
                "weight": _num(item.weight),
                "charged_weight": _num(item.charged_weight),
                "rate": item.rate,
            }
            for item in bilty.items.all()
        ]
    return data


def serialize_challan(challan: Challan, *, with_items: bool = True, scheme: NumberingScheme | None = None) -> dict:
    data = {
        "id": challan.pk,
        "number": challan.number,
        "display_number": challan.format_number(scheme),
        "scope_key": challan.scope_key,
        "date": challan.date,
        "truck_no": challan.truck_no,
        "truck_owner_name": challan.truck_owner_name,
        "from_city": challan.from_city,
        "to_city": challan.to_city,
        "license_no": challan.license_no,
        "cash_or_due": challan.cash_or_due,
        "transport_name": challan.transport_name,
        "commission": _num(challan.commission),
        "payment_mode": challan.payment_mode,
        "total_freight": _num(challan.total_freight),
        "total_commission": _num(challan.total_commission),
        "created_at": challan.created_at,
        "updated_at": challan.updated_at,
    }
    if with_items:
        data["items"] = [
            {
                "bilty_no": item.bilty_no,
                "freight": _num(item.freight),
                "weight": _num(item.weight),
                "rate": _num(item.rate),
                "total": _num(item.total),
            }
            for item in challan.items.all()
        ]
    return data


def _created(document, label: str):
    return {
        "id": document.pk,
        "number": document.number,
        "display_number": document.display_number,
        "message": f"{label} created successfully!",
    }, 201


# ============================================================
# Bilties
# ============================================================

@json_api(methods=("GET", "POST"))
def bilty_collection(request):
    """
    GET  /api/bilties/?search=&status=&date=YYYY-MM-DD -> {"bilties": [...]}
    POST /api/bilties/                                 -> 201 {"id", "number", "message"}
    """
    if request.method == "POST":
        bilty = BiltyService.create(parse_json_body(request), actor=request.user)
        return _created(bilty, "Bilty")

    qs = (
        Bilty.objects
        .search(request.GET.get("search"))
        .with_status((request.GET.get("status") or "").strip())
        .prefetch_related("items")
        .newest_first()
    )

    raw_date = request.GET.get("date")
    if raw_date:
        day = parse_date_param(raw_date)
        if day is None:
            raise BadRequest("date must be YYYY-MM-DD.")
        qs = qs.on_date(day)

    scheme = NumberingScheme.lookup(DocumentType.BILTY)
    return {"bilties": [serialize_bilty(b, scheme=scheme) for b in qs]}


@json_api(methods=("GET", "PUT", "DELETE"))
def bilty_detail(request, pk: int):
    bilty = BiltyService.get(pk)

    if request.method == "PUT":
        BiltyService.update(bilty, parse_json_body(request), actor=request.user)
        return {"message": "Bilty updated successfully", "bilty": serialize_bilty(BiltyService.get(pk))}

    if request.method == "DELETE":
        BiltyService.delete(bilty, actor=request.user)
        return {"message": "Bilty deleted successfully"}

    return {"bilty": serialize_bilty(bilty)}


@json_api(methods=("GET",))
def bilty_pdf(request, pk: int):
    bilty = BiltyService.get(pk)
    return render_pdf_response(
        request,
        "transport/pdf/bilty.html",
        bilty_context(bilty),
        filename=f"bilty-{bilty.number}.pdf",
    )


@json_api(methods=("GET",))
def bilty_export(request):
    """
    GET /api/bilties/export/?from=2025-04-01&to=2025-04-30 -> gst_report.xlsx
    """
    date_from = parse_date_param(request.GET.get("from"))
    date_to = parse_date_param(request.GET.get("to"))
    if date_from and date_to and date_from > date_to:
        raise BadRequest("'from' must not be after 'to'.")

    wb = build_gst_report(date_from, date_to)

    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    response["Content-Disposition"] = 'attachment; filename="gst_report.xlsx"'
    wb.save(response)
    return response


@json_api(methods=("POST",))
def bilty_bulk_import(request):
    """
    POST /api/bilties/bulk-import/

    Either a JSON body {"bilties": [{...}, ...]} or a multipart upload with
    an .xlsx in the "file" field.
    """
    if request.content_type == "multipart/form-data":
        upload = request.FILES.get("file")
        if upload is None:
            raise BadRequest("Upload an .xlsx file in the 'file' field.")
        rows = rows_from_workbook(upload)
    else:
        rows = rows_from_json(parse_json_body(request).get("bilties"))

    result = import_bilties(rows, actor=request.user)
    return result.as_dict()


@json_api(methods=("GET",))
def bilty_suggestions(request):
    """
    GET /api/bilties/suggestions/?field=consignor&q=shar -> {"suggestions": [...]}
    """
    field = (request.GET.get("field") or "").strip()
    if not field:
        raise BadRequest("field parameter is required.")
    return {"suggestions": suggest(field, request.GET.get("q") or "")}


@json_api(methods=("GET",))
def dashboard(request):
    stats = dashboard_stats()
    scheme = NumberingScheme.lookup(DocumentType.BILTY)
    stats["recent"] = [serialize_bilty(b, with_items=False, scheme=scheme) for b in stats["recent"]]
    return stats


# ============================================================
# Challans
# ============================================================

@json_api(methods=("GET", "POST"))
def challan_collection(request):
    if request.method == "POST":
        challan = ChallanService.create(parse_json_body(request), actor=request.user)
        return _created(challan, "Challan")

    qs = (
        Challan.objects
        .search(request.GET.get("search"))
        .prefetch_related("items")
        .newest_first()
    )
    scheme = NumberingScheme.lookup(DocumentType.CHALLAN)
    return {"challans": [serialize_challan(c, scheme=scheme) for c in qs]}


@json_api(methods=("GET", "PUT", "DELETE"))
def challan_detail(request, pk: int):
    challan = ChallanService.get(pk)

    if request.method == "PUT":
        ChallanService.update(challan, parse_json_body(request), actor=request.user)
        return {"message": "Challan updated successfully", "challan": serialize_challan(ChallanService.get(pk))}

    if request.method == "DELETE":
        ChallanService.delete(challan, actor=request.user)
        return {"message": "Challan deleted successfully"}

    return {"challan": serialize_challan(challan)}


@json_api(methods=("GET",))
def challan_pdf(request, pk: int):
    challan = ChallanService.get(pk)
    return render_pdf_response(
        request,
        "transport/pdf/challan.html",
        challan_context(challan),
        filename=f"challan-{challan.number}.pdf",
    )
