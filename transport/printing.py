# transport/printing.py
"""
Template contexts for the printable bilty and challan.
"""
from decimal import Decimal

from django.conf import settings

from .models import Bilty, Challan, DECIMAL_ZERO

# A bilty is printed three times on one A4 page
BILTY_COPIES = 3


def bilty_context(bilty: Bilty) -> dict:
    return {
        "bilty": bilty,
        "items": list(bilty.items.all()),
        "company": settings.COMPANY,
        "copies": range(BILTY_COPIES),
    }


def _find_bilty(bilty_no: str):
    """
    Challan rows carry the bilty number as typed; match it against bilty numbers.
    """
    bilty_no = (bilty_no or "").strip()
    if not bilty_no.isdigit():
        return None
    return (
        Bilty.objects
        .with_number(int(bilty_no))
        .prefetch_related("items")
        .newest_first()
        .first()
    )


def challan_rows(challan: Challan) -> list:
    """
    One printable row per challan item, completed with the consignor,
    consignee and first goods line of the bilty it refers to.
    """
    rows = []
    for item in challan.items.all():
        row = {
            "bilty_no": item.bilty_no,
            "consignor_name": "",
            "consignee_name": "",
            "description": "",
            "quantity": Decimal("1"),
            "weight": item.weight or DECIMAL_ZERO,
            "amount": item.freight or item.total or DECIMAL_ZERO,
        }
        bilty = _find_bilty(item.bilty_no)
        if bilty is not None:
            row["consignor_name"] = bilty.consignor_name
            row["consignee_name"] = bilty.consignee_name
            first = next(iter(bilty.items.all()), None)
            if first is not None:
                row["description"] = first.goods_description
                row["quantity"] = first.quantity
                row["weight"] = first.weight
        rows.append(row)
    return rows


def challan_context(challan: Challan) -> dict:
    rows = challan_rows(challan)
    return {
        "challan": challan,
        "rows": rows,
        "company": settings.COMPANY,
        "total_quantity": sum((r["quantity"] for r in rows), Decimal("0")),
        "total_weight": sum((r["weight"] for r in rows), Decimal("0")),
        "total_amount": sum((r["amount"] for r in rows), Decimal("0")),
    }
