# transport/imports.py
"""
Bulk import of bilties that already carry a number (books kept before this
system, or another branch's register).

Rows come either as a JSON list or as an .xlsx sheet laid out like the GST
report. Every row is saved on its own; bad rows are reported and skipped.
Afterwards the bilty counter of each scope is raised to the highest imported
number, so numbers allocated later never collide with imported ones.
"""
from __future__ import annotations

import datetime
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from zipfile import BadZipFile

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils.translation import gettext_lazy as _
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from core.api import parse_date_param
from core.models import AuditLog, DocumentType
from core.services.audit import log_event
from core.services.numbering import Allocator, resolve_scope
from parties.validators import is_valid_gstin

from .models import Bilty, BiltyItem, DECIMAL_ZERO

logger = logging.getLogger(__name__)

DEFAULT_FROM_CITY = "JODHPUR"
DEFAULT_TO_CITY = "HYDERABAD"
DEFAULT_PAID_BY = "EXEMPTED"

# Sheet header (lower-cased, dots and spaces dropped) -> row key
COLUMN_MAP = {
    "date": "bilty_date",
    "biltydate": "bilty_date",
    "grno": "number",
    "biltyno": "number",
    "number": "number",
    "consignor": "consignor_name",
    "consignorgstin": "consignor_gstin",
    "consignee": "consignee_name",
    "consigneegstin": "consignee_gstin",
    "totamt": "total_amount",
    "totalamount": "total_amount",
    "sgst": "sgst",
    "cgst": "cgst",
    "paidby": "paid_by",
    "from": "from_city",
    "to": "to_city",
    "truckno": "truck_no",
}

_AMOUNT_JUNK = re.compile(r"[₹,\s()]")


@dataclass
class ImportResult:
    total: int = 0
    results: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def as_dict(self) -> dict:
        return {
            "message": (
                f"Bulk import completed. {self.succeeded} succeeded, {self.failed} failed."
            ),
            "results": self.results,
            "errors": self.errors,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


# ===================================================================
# Parsing helpers
# ===================================================================

def parse_import_date(value) -> datetime.date | None:
    """
    Accepts date/datetime objects, DD-MM-YYYY, D/M/YYYY and ISO dates.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if value is None:
        return None

    text = str(value).strip()
    for fmt in ("%d-%m-%Y", "%d/%m/%Y"):
        try:
            return datetime.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return parse_date_param(text)


def parse_amount(value) -> Decimal:
    """
    "₹1,250.00" -> Decimal("1250.00"); blanks and garbage -> 0.
    """
    if value is None or isinstance(value, bool):
        return DECIMAL_ZERO
    try:
        amount = Decimal(_AMOUNT_JUNK.sub("", str(value)) or "0")
    except InvalidOperation:
        return DECIMAL_ZERO
    return amount if amount.is_finite() else DECIMAL_ZERO


def parse_bilty_number(value) -> int | None:
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number != number.to_integral_value() or number <= 0:
        return None
    return int(number)


def _text(row: dict, key: str, default: str = "") -> str:
    value = row.get(key)
    if value is None:
        return default
    return str(value).strip() or default


# ===================================================================
# Row sources
# ===================================================================

def _normalize_header(raw) -> str:
    return re.sub(r"[\s._]", "", str(raw or "")).lower()


def rows_from_workbook(file_obj) -> list[dict]:
    """
    Read the first sheet. The header row is the first row that has both a
    date and a G.R. number column, so an exported GST report imports as is.
    """
    try:
        wb = load_workbook(file_obj, data_only=True, read_only=True)
    except (InvalidFileException, BadZipFile, OSError):
        raise ValidationError({"file": _("The file is not a readable .xlsx workbook.")})
    ws = wb.active

    header_map = None
    rows = []
    for values in ws.iter_rows(values_only=True):
        if header_map is None:
            candidate = {}
            for col, raw in enumerate(values):
                key = COLUMN_MAP.get(_normalize_header(raw))
                if key and key not in candidate:
                    candidate[key] = col
            if "bilty_date" in candidate and "number" in candidate:
                header_map = candidate
            continue

        if not any(v not in (None, "") for v in values):
            continue
        rows.append({
            key: values[col] if col < len(values) else None
            for key, col in header_map.items()
        })

    wb.close()

    if header_map is None:
        raise ValidationError(
            {"file": _("No header row with Date and G.R. No. columns was found.")}
        )
    return rows


def rows_from_json(items) -> list:
    """
    Accept the sheet headers ("G.R. No.", "Tot. Amt.") as well as field names.
    """
    if not isinstance(items, list):
        return items
    rows = []
    for item in items:
        if isinstance(item, dict):
            item = {COLUMN_MAP.get(_normalize_header(k), k): v for k, v in item.items()}
        rows.append(item)
    return rows


# ===================================================================
# Import
# ===================================================================

def _build_bilty(row: dict) -> tuple[Bilty | None, list[str]]:
    problems = []

    number = parse_bilty_number(row.get("number"))
    if number is None:
        problems.append("missing or invalid G.R. No.")

    bilty_date = parse_import_date(row.get("bilty_date"))
    if bilty_date is None:
        problems.append(f"invalid date {row.get('bilty_date')!r}, use DD-MM-YYYY")

    consignor_name = _text(row, "consignor_name")
    consignee_name = _text(row, "consignee_name")
    if not consignor_name:
        problems.append("missing consignor")
    if not consignee_name:
        problems.append("missing consignee")

    total_amount = parse_amount(row.get("total_amount"))
    if total_amount <= 0:
        problems.append("total amount must be greater than 0")

    consignor_gstin = _text(row, "consignor_gstin").upper()
    consignee_gstin = _text(row, "consignee_gstin").upper()
    for label, gstin in (("consignor", consignor_gstin), ("consignee", consignee_gstin)):
        if gstin and not is_valid_gstin(gstin):
            problems.append(f"invalid {label} GSTIN {gstin}")

    if problems:
        return None, problems

    bilty = Bilty(
        number=number,
        scope_key=resolve_scope(DocumentType.BILTY, bilty_date),
        bilty_date=bilty_date,
        consignor_name=consignor_name,
        consignor_gstin=consignor_gstin,
        consignee_name=consignee_name,
        consignee_gstin=consignee_gstin,
        from_city=_text(row, "from_city", DEFAULT_FROM_CITY),
        to_city=_text(row, "to_city", DEFAULT_TO_CITY),
        truck_no=_text(row, "truck_no").upper(),
        paid_by=_text(row, "paid_by", DEFAULT_PAID_BY),
        status=Bilty.Status.PENDING,
        freight=total_amount,
        total=total_amount,
        sgst=parse_amount(row.get("sgst")),
        cgst=parse_amount(row.get("cgst")),
        grand_total=total_amount,
    )
    return bilty, []


def import_bilties(rows: list, *, actor=None, allocator: Allocator | None = None) -> ImportResult:
    """
    Save every valid row with the number it carries.

    A number already used in its scope, or not above the scope's counter,
    is a row error. Once the rows are in,
    each touched counter is raised to the highest imported number.
    """
    if not isinstance(rows, list) or not rows:
        raise ValidationError({"bilties": _("Bilties list is required and must not be empty.")})

    allocator = allocator or Allocator()
    result = ImportResult(total=len(rows))
    highest: dict[str, int] = {}
    issued: dict[str, int] = {}
    authenticated = getattr(actor, "is_authenticated", False)

    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            result.errors.append({"row": index, "number": None, "error": "row must be an object"})
            continue

        bilty, problems = _build_bilty(row)
        if problems:
            result.errors.append({
                "row": index,
                "number": row.get("number") or "Unknown",
                "error": "; ".join(problems),
            })
            continue

        if Bilty.objects.filter(number=bilty.number, scope_key=bilty.scope_key).exists():
            result.errors.append({
                "row": index,
                "number": bilty.number,
                "error": "number already exists",
            })
            continue

        # Numbers up to the counter were handed out already, even if deleted since
        if bilty.scope_key not in issued:
            issued[bilty.scope_key] = allocator.store.read(DocumentType.BILTY, bilty.scope_key) or 0
        if bilty.number <= issued[bilty.scope_key]:
            result.errors.append({
                "row": index,
                "number": bilty.number,
                "error": "number already issued",
            })
            continue

        if authenticated:
            bilty.created_by = actor
            bilty.updated_by = actor

        try:
            with transaction.atomic():
                bilty.save()
                BiltyItem.objects.create(
                    bilty=bilty,
                    quantity=Decimal("1"),
                    goods_description="Goods",
                    rate=str(bilty.grand_total),
                )
        except IntegrityError:
            result.errors.append({
                "row": index,
                "number": bilty.number,
                "error": "number already exists",
            })
            continue

        result.results.append({"row": index, "number": bilty.number, "id": bilty.pk})
        highest[bilty.scope_key] = max(highest.get(bilty.scope_key, 0), bilty.number)

    for scope_key, number in highest.items():
        value = allocator.ensure_at_least(DocumentType.BILTY, scope_key, number)
        logger.info("Bilty counter [%s] is now at %s after import", scope_key, value)

    log_event(
        action=AuditLog.Action.IMPORT,
        message=f"Imported {result.succeeded} bilties ({result.failed} failed).",
        actor=actor,
        extra={
            "total": result.total,
            "succeeded": result.succeeded,
            "failed": result.failed,
            "numbers": [r["number"] for r in result.results],
        },
    )
    return result
