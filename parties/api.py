# parties/api.py

from core.api import json_api, parse_json_body

from . import services
from .reminders import PaymentReminder, build_reminder_link


# ============================================================
# Parties
# ============================================================

@json_api(methods=("GET", "POST"))
def party_collection(request):
    """
    GET  /api/parties/?search=acme   -> {"parties": [...]}
    POST /api/parties/               -> 201 {"id": 3, "message": "..."}
    """
    if request.method == "POST":
        party = services.create_party(parse_json_body(request), actor=request.user)
        return {"id": party.pk, "message": "Party created successfully"}, 201

    search = (request.GET.get("search") or "").strip()
    parties = [services.serialize_party(p) for p in services.list_parties(search)]
    return {"parties": parties}


@json_api(methods=("GET", "PUT", "DELETE"))
def party_detail(request, pk: int):
    party = services.get_party(pk)

    if request.method == "PUT":
        services.update_party(party, parse_json_body(request), actor=request.user)
        return {"message": "Party updated successfully"}

    if request.method == "DELETE":
        services.delete_party(party, actor=request.user)
        return {"message": "Party deleted successfully"}

    return {"party": services.serialize_party(party)}


# ============================================================
# Payment reminder
# ============================================================

@json_api(methods=("POST",))
def payment_reminder_api(request):
    """
    POST /api/payment-reminder/

    {
      "customer_name": "Acme Traders",
      "whatsapp_number": "98290 12345",
      "due_amount": 15000,
      "reminder_message": "Kindly clear the pending freight.",
      "invoice_number": "GR-1201",   # optional
      "due_date": "2025-12-31"       # optional
    }
    -> {"wa_link": "https://wa.me/919829012345?text=..."}
    """
    reminder = PaymentReminder.from_payload(parse_json_body(request))
    return {"wa_link": build_reminder_link(reminder)}
