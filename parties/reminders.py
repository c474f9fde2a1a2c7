# parties/reminders.py
"""
Payment reminders sent through a WhatsApp click-to-chat link.

Nothing is sent from the server: the caller opens the returned link and the
operator presses "send" in WhatsApp.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from urllib.parse import quote

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _


@dataclass(frozen=True)
class PaymentReminder:
    customer_name: str
    whatsapp_number: str
    due_amount: Decimal
    reminder_message: str
    invoice_number: str = ""
    due_date: str = ""

    @classmethod
    def from_payload(cls, data: dict) -> "PaymentReminder":
        errors = {}

        def text(key):
            value = data.get(key)
            return str(value).strip() if value is not None else ""

        customer_name = text("customer_name")
        whatsapp_number = text("whatsapp_number")
        reminder_message = text("reminder_message")

        if not customer_name:
            errors["customer_name"] = _("Customer name is required.")
        if not whatsapp_number:
            errors["whatsapp_number"] = _("WhatsApp number is required.")
        if not reminder_message:
            errors["reminder_message"] = _("Message is required.")

        due_amount = None
        raw_amount = data.get("due_amount")
        try:
            due_amount = Decimal(str(raw_amount).replace(",", "").strip())
        except (InvalidOperation, ValueError):
            errors["due_amount"] = _("Due amount is required.")
        else:
            if not due_amount.is_finite() or due_amount <= 0:
                errors["due_amount"] = _("Due amount must be greater than zero.")

        if errors:
            raise ValidationError(errors)

        return cls(
            customer_name=customer_name,
            whatsapp_number=whatsapp_number,
            due_amount=due_amount,
            reminder_message=reminder_message,
            invoice_number=text("invoice_number"),
            due_date=text("due_date"),
        )


def normalize_whatsapp_number(raw: str, country_code: str | None = None) -> str:
    """
    Keep digits only; a bare 10-digit mobile number gets the country code.
    """
    if country_code is None:
        country_code = settings.REMINDERS["COUNTRY_CODE"]
    number = re.sub(r"\D", "", raw or "")
    if len(number) == 10 and not number.startswith(country_code):
        number = country_code + number
    return number


def format_inr(amount) -> str:
    """
    Indian digit grouping: 1234567.5 -> "12,34,567.5".
    """
    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    sign = "-" if value < 0 else ""
    integer, _sep, fraction = f"{abs(value):.2f}".partition(".")
    fraction = fraction.rstrip("0")

    if len(integer) > 3:
        head, tail = integer[:-3], integer[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        integer = ",".join(groups + [tail])

    return f"{sign}{integer}.{fraction}" if fraction else f"{sign}{integer}"


def compose_message(reminder: PaymentReminder, signature: str | None = None) -> str:
    if signature is None:
        signature = settings.COMPANY["NAME"]

    lines = [
        f"Dear {reminder.customer_name},",
        "",
        "This is a payment reminder.",
        reminder.reminder_message,
        "",
    ]
    if reminder.invoice_number:
        lines.append(f"Invoice Ref: {reminder.invoice_number}")
    if reminder.due_date:
        lines.append(f"Due Date: {reminder.due_date}")
    lines.append(f"Due Amount: ₹{format_inr(reminder.due_amount)}")
    lines.append("")
    lines.append(f"- {signature}")
    return "\n".join(lines)


def build_reminder_link(reminder: PaymentReminder) -> str:
    number = normalize_whatsapp_number(reminder.whatsapp_number)
    if not number:
        raise ValidationError({"whatsapp_number": _("WhatsApp number has no digits.")})

    message = compose_message(reminder)
    return f"{settings.REMINDERS['CHAT_URL']}{number}?text={quote(message, safe='')}"
