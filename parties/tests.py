import json
from decimal import Decimal
from urllib.parse import unquote

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.urls import reverse

from core.models import AuditLog
from parties import services
from parties.models import Party
from parties.reminders import (
    PaymentReminder,
    build_reminder_link,
    compose_message,
    format_inr,
    normalize_whatsapp_number,
)
from parties.validators import is_valid_gstin, validate_gstin

VALID_GSTIN = "27AAPFU0939F1ZV"


class GstinValidatorTests(TestCase):
    def test_valid_gstin(self):
        self.assertTrue(is_valid_gstin(VALID_GSTIN))
        self.assertTrue(is_valid_gstin("08AAAHL5963P1ZK"))
        validate_gstin(VALID_GSTIN)

    def test_rejects_short_gstin(self):
        self.assertFalse(is_valid_gstin("27AAPFU0939F1Z"))
        with self.assertRaises(ValidationError) as ctx:
            validate_gstin("27AAPFU0939F1Z")
        self.assertEqual(ctx.exception.code, "invalid_gstin")

    def test_rejects_lowercase_and_garbage(self):
        self.assertFalse(is_valid_gstin("27aapfu0939f1zv"))
        self.assertFalse(is_valid_gstin("AAAAAAAAAAAAAAA"))
        self.assertFalse(is_valid_gstin(None))


class PartyQuerySetTests(TestCase):
    def setUp(self):
        self.sharma = Party.objects.create(name="Sharma Textiles", gstin=VALID_GSTIN, phone="9829012345")
        self.mehta = Party.objects.create(
            name="Mehta Steel",
            gstin="08AAAHL5963P1ZK",
            party_type=Party.PartyType.CONSIGNEE,
            is_active=False,
        )

    def test_search_matches_name_gstin_and_phone(self):
        self.assertEqual(list(Party.objects.search("sharma")), [self.sharma])
        self.assertEqual(list(Party.objects.search("08AAAHL")), [self.mehta])
        self.assertEqual(list(Party.objects.search("98290")), [self.sharma])
        self.assertEqual(Party.objects.search("").count(), 2)

    def test_role_and_status_filters(self):
        self.assertEqual(list(Party.objects.active()), [self.sharma])
        self.assertEqual(list(Party.objects.consignors()), [self.sharma])
        self.assertEqual(set(Party.objects.consignees()), {self.sharma, self.mehta})

    def test_state_code_and_pan(self):
        self.assertEqual(self.sharma.state_code, "27")
        self.assertEqual(self.sharma.pan, "AAPFU0939F")


class PartyServiceTests(TestCase):
    def test_create_defaults(self):
        party = services.create_party({"name": "Acme", "gstin": VALID_GSTIN})

        self.assertEqual(party.party_type, Party.PartyType.BOTH)
        self.assertTrue(party.is_active)
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.Action.CREATE).exists())

    def test_create_requires_valid_gstin(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_party({"name": "Acme", "gstin": "27AAPFU0939F1Z"})
        self.assertIn("gstin", ctx.exception.message_dict)

    def test_duplicate_gstin_is_allowed(self):
        services.create_party({"name": "Acme Jodhpur", "gstin": VALID_GSTIN})
        services.create_party({"name": "Acme Pali", "gstin": VALID_GSTIN})
        self.assertEqual(Party.objects.with_gstin(VALID_GSTIN).count(), 2)

    def test_partial_update_keeps_other_fields(self):
        party = services.create_party(
            {"name": "Acme", "gstin": VALID_GSTIN, "party_type": "consignor", "is_active": False}
        )
        services.update_party(party, {"phone": "0291-2745000"})
        party.refresh_from_db()

        self.assertEqual(party.phone, "0291-2745000")
        self.assertEqual(party.party_type, Party.PartyType.CONSIGNOR)
        self.assertFalse(party.is_active)


class PartyApiTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="clerk", password="x")
        self.client.force_login(self.user)
        self.collection_url = reverse("parties:party_collection")

    def _post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def test_requires_login(self):
        self.client.logout()
        response = self.client.get(self.collection_url)
        self.assertEqual(response.status_code, 401)

    def test_create_list_update_delete(self):
        response = self._post(self.collection_url, {"name": "Sharma Textiles", "gstin": VALID_GSTIN})
        self.assertEqual(response.status_code, 201)
        party_id = response.json()["id"]

        response = self.client.get(self.collection_url, {"search": "sharma"})
        self.assertEqual([p["id"] for p in response.json()["parties"]], [party_id])

        detail_url = reverse("parties:party_detail", args=[party_id])
        response = self.client.put(
            detail_url,
            data=json.dumps({"contact_person": "R. Sharma"}),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(detail_url).json()["party"]["contact_person"], "R. Sharma")

        response = self.client.delete(detail_url)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Party.objects.filter(pk=party_id).exists())
        self.assertEqual(self.client.get(detail_url).status_code, 404)

    def test_invalid_gstin_is_400(self):
        response = self._post(self.collection_url, {"name": "Acme", "gstin": "BAD"})
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertEqual(body["reason"], "validation_failed")
        self.assertIn("gstin", body["errors"])

    def test_created_by_is_recorded(self):
        response = self._post(self.collection_url, {"name": "Acme", "gstin": VALID_GSTIN})
        party = Party.objects.get(pk=response.json()["id"])
        self.assertEqual(party.created_by, self.user)


# ===================================================================
# Payment reminder
# ===================================================================

@override_settings(
    COMPANY={"NAME": "Test Carrier", "ADDRESS": "Jodhpur", "GSTIN": "08AAAHL5963P1ZK"},
    REMINDERS={"COUNTRY_CODE": "91", "CHAT_URL": "https://wa.me/"},
)
class PaymentReminderTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="clerk", password="x")
        self.client.force_login(self.user)

    def test_format_inr(self):
        self.assertEqual(format_inr(1234567), "12,34,567")
        self.assertEqual(format_inr(Decimal("123456.50")), "1,23,456.5")
        self.assertEqual(format_inr(999), "999")
        self.assertEqual(format_inr(1000), "1,000")

    def test_normalize_number(self):
        self.assertEqual(normalize_whatsapp_number("98290 12345"), "919829012345")
        self.assertEqual(normalize_whatsapp_number("+91 98290-12345"), "919829012345")

    def test_message_and_link(self):
        reminder = PaymentReminder.from_payload({
            "customer_name": "Sharma Textiles",
            "whatsapp_number": "9829012345",
            "due_amount": "150000",
            "reminder_message": "Kindly clear the pending freight.",
            "invoice_number": "GR-1201",
        })

        message = compose_message(reminder)
        self.assertIn("Dear Sharma Textiles,", message)
        self.assertIn("Invoice Ref: GR-1201", message)
        self.assertIn("Due Amount: ₹1,50,000", message)
        self.assertTrue(message.endswith("- Test Carrier"))

        link = build_reminder_link(reminder)
        self.assertTrue(link.startswith("https://wa.me/919829012345?text="))
        self.assertEqual(unquote(link.split("?text=", 1)[1]), message)

    def test_missing_fields_are_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            PaymentReminder.from_payload({"customer_name": "", "due_amount": "0"})
        errors = ctx.exception.message_dict
        for key in ("customer_name", "whatsapp_number", "reminder_message", "due_amount"):
            self.assertIn(key, errors)

    def test_endpoint(self):
        response = self.client.post(
            reverse("payment_reminder"),
            data=json.dumps({
                "customer_name": "Sharma Textiles",
                "whatsapp_number": "9829012345",
                "due_amount": 2500,
                "reminder_message": "Please pay.",
            }),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["wa_link"].startswith("https://wa.me/919829012345?text="))

    def test_endpoint_rejects_get(self):
        self.assertEqual(self.client.get(reverse("payment_reminder")).status_code, 405)
