# transport/exports.py
import datetime

from django.conf import settings
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from .models import Bilty

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

GST_REPORT_HEADERS = [
    "Date",
    "G.R. No.",
    "Consignor",
    "Consignor GSTIN",
    "Consignee",
    "Consignee GSTIN",
    "Tot. Amt.",
    "SGST",
    "CGST",
    "Paid by",
]
GST_REPORT_WIDTHS = [12, 10, 20, 18, 20, 18, 12, 10, 10, 12]


def _fmt_date(value: datetime.date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def build_gst_report(date_from=None, date_to=None) -> Workbook:
    """
    GST report of the bilties dated between `date_from` and `date_to`
    (inclusive; both optional).

    Layout:
      row 1  company name
      row 2  address and GSTIN
      row 4  "GST REPORT"
      row 5  date range
      row 6  column headers, then one row per bilty
    """
    company = settings.COMPANY
    last_col = get_column_letter(len(GST_REPORT_HEADERS))

    wb = Workbook()
    ws = wb.active
    ws.title = "GST Report"

    center = Alignment(horizontal="center", vertical="center")

    ws.merge_cells(f"A1:{last_col}1")
    ws["A1"] = company["NAME"]
    ws["A1"].font = Font(bold=True, size=14)
    ws["A1"].alignment = center

    ws.merge_cells(f"A2:{last_col}2")
    ws["A2"] = f"{company['ADDRESS']}    {company['GSTIN']}"
    ws["A2"].font = Font(size=12)
    ws["A2"].alignment = center

    ws.merge_cells(f"A4:{last_col}4")
    ws["A4"] = "GST REPORT"
    ws["A4"].font = Font(bold=True, size=12)
    ws["A4"].alignment = center

    ws.merge_cells("A5:B5")
    ws["A5"] = "Date From"
    ws["A5"].font = Font(bold=True)
    ws["C5"] = _fmt_date(date_from)
    ws["D5"] = "To"
    ws["E5"] = _fmt_date(date_to)

    ws.append(GST_REPORT_HEADERS)
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center")

    bilties = Bilty.objects.dated_between(date_from, date_to).order_by("bilty_date", "number", "id")
    for bilty in bilties:
        ws.append([
            _fmt_date(bilty.bilty_date),
            bilty.number,
            bilty.consignor_name,
            bilty.consignor_gstin,
            bilty.consignee_name,
            bilty.consignee_gstin,
            float(bilty.grand_total or 0),
            float(bilty.sgst or 0),
            float(bilty.cgst or 0),
            bilty.paid_by or "consignee",
        ])

    for index, width in enumerate(GST_REPORT_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(index)].width = width

    return wb
