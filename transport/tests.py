import datetime
import io
import json
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError, connection
from django.test import TestCase, override_settings
from django.test.utils import CaptureQueriesContext
from django.urls import reverse
from openpyxl import Workbook, load_workbook

from core.exceptions import AllocationContention, NotFoundError, PersistError
from core.models import AuditLog, DocumentCounter, DocumentType, NumberingScheme
from core.services.numbering import Allocator, CounterStore
from transport.domain import DocumentCreated
from transport.exports import GST_REPORT_HEADERS
from transport.imports import import_bilties, parse_amount, parse_import_date, rows_from_json
from transport.models import Bilty, BiltyItem, Challan, ChallanItem
from transport.printing import challan_rows
from transport.services import BiltyService, ChallanService
from transport.stats import dashboard_stats
from transport.suggestions import levenshtein, match_score, suggest

COMPANY = {"NAME": "Test Carrier", "ADDRESS": "Basni, Jodhpur", "GSTIN": "08AAAHL5963P1ZK"}


def bilty_payload(**overrides):
    payload = {
        "bilty_date": "2025-06-01",
        "truck_no": "rj19 gb 4521",
        "from_city": "JODHPUR",
        "to_city": "HYDERABAD",
        "consignor_name": "Sharma Textiles",
        "consignor_gstin": "08AAAHL5963P1ZK",
        "consignee_name": "Reddy Traders",
        "consignee_gstin": "36AABCR1234F1Z5",
        "paid_by": "consignee",
        "items": [
            {
                "quantity": 10,
                "goods_description": "Cloth bales",
                "hsn_code": "5208",
                "weight": 500,
                "charged_weight": 520,
                "rate": "2/kg",
            }
        ],
        "charges": {
            "freight": 1040,
            "pf": 20,
            "lc": 10,
            "bc": 0,
            "cgst": 26.75,
            "sgst": 26.75,
            "igst": 0,
            "advance": 0,
            "grand_total": 1123.5,
        },
    }
    payload.update(overrides)
    return payload


def challan_payload(**overrides):
    payload = {
        "date": "2025-06-02",
        "truck_no": "RJ19GB4521",
        "truck_owner_name": "Bhanwar Lal",
        "from_city": "JODHPUR",
        "to_city": "HYDERABAD",
        "license_no": "RJ19 20180012345",
        "transport_name": "Marwar Roadlines",
        "commission": 200,
        "items": [
            {"bilty_no": "1", "weight": 10, "rate": 5},
            {"bilty_no": "2", "freight": 100, "total": 100},
        ],
    }
    payload.update(overrides)
    return payload


class TransportTestCase(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="clerk", password="x")

    def counter(self, document_type, scope_key=""):
        return CounterStore().read(document_type, scope_key)


# ===================================================================
# Bilty service
# ===================================================================

class BiltyCreateTests(TransportTestCase):
    def test_first_bilty_gets_one_then_two(self):
        first = BiltyService.create(bilty_payload(), actor=self.user)
        second = BiltyService.create(bilty_payload(), actor=self.user)

        self.assertEqual(first.number, 1)
        self.assertEqual(second.number, 2)
        self.assertEqual(self.counter(DocumentType.BILTY), 2)

    def test_identical_payloads_make_two_documents(self):
        a = BiltyService.create(bilty_payload())
        b = BiltyService.create(bilty_payload())

        self.assertNotEqual(a.pk, b.pk)
        self.assertNotEqual(a.number, b.number)
        self.assertEqual(Bilty.objects.count(), 2)

    def test_saved_fields_and_items(self):
        bilty = BiltyService.create(bilty_payload(), actor=self.user)
        bilty.refresh_from_db()

        self.assertEqual(bilty.truck_no, "RJ19 GB 4521")
        self.assertEqual(bilty.bilty_date, datetime.date(2025, 6, 1))
        self.assertEqual(bilty.status, Bilty.Status.PENDING)
        self.assertEqual(bilty.grand_total, Decimal("1123.50"))
        self.assertEqual(bilty.created_by, self.user)
        self.assertEqual(bilty.items.count(), 1)
        self.assertEqual(bilty.items.get().goods_description, "Cloth bales")

    def test_sub_total_defaults_to_sum_of_charges(self):
        bilty = BiltyService.create(bilty_payload())
        self.assertEqual(bilty.total, Decimal("1070"))
        self.assertEqual(bilty.compute_grand_total(), Decimal("1123.50"))

    def test_iso_timestamp_date_is_accepted(self):
        bilty = BiltyService.create(bilty_payload(bilty_date="2025-06-01T00:00:00.000Z"))
        self.assertEqual(bilty.bilty_date, datetime.date(2025, 6, 1))

    def test_create_emits_document_created(self):
        with mock.patch("transport.services.emit") as emit:
            bilty = BiltyService.create(bilty_payload())

        event = emit.call_args.args[0]
        self.assertIsInstance(event, DocumentCreated)
        self.assertEqual(event.document_id, bilty.pk)
        self.assertEqual(event.number, 1)

    def test_create_is_audited(self):
        bilty = BiltyService.create(bilty_payload(), actor=self.user)
        entry = AuditLog.objects.get(action=AuditLog.Action.CREATE)

        self.assertEqual(entry.target, bilty)
        self.assertEqual(entry.actor, self.user)
        self.assertEqual(entry.extra["number"], 1)

    def test_fiscal_year_numbering(self):
        NumberingScheme.objects.create(
            document_type=DocumentType.BILTY,
            reset=NumberingScheme.ResetPolicy.FISCAL_YEAR,
            prefix="GR",
        )
        march = BiltyService.create(bilty_payload(bilty_date="2025-03-31"))
        april = BiltyService.create(bilty_payload(bilty_date="2025-04-01"))

        self.assertEqual((march.scope_key, march.number), ("2024-25", 1))
        self.assertEqual((april.scope_key, april.number), ("2025-26", 1))
        self.assertEqual(april.display_number, "GR/2025-26/1")


class BiltyValidationTests(TransportTestCase):
    def assertRejected(self, payload, key):
        with self.assertRaises(ValidationError) as ctx:
            BiltyService.create(payload)
        self.assertIn(key, ctx.exception.message_dict)
        # Nothing was allocated
        self.assertIsNone(self.counter(DocumentType.BILTY))
        self.assertFalse(Bilty.objects.exists())

    def test_required_header_fields(self):
        for name in ("bilty_date", "truck_no", "from_city", "to_city", "consignor_name", "consignee_name"):
            payload = bilty_payload()
            del payload[name]
            with self.subTest(field=name):
                self.assertRejected(payload, name)

    def test_items_cannot_be_empty(self):
        self.assertRejected(bilty_payload(items=[]), "items")

    def test_items_must_be_a_list(self):
        self.assertRejected(bilty_payload(items={"goods_description": "x"}), "items")

    def test_item_errors_are_indexed(self):
        items = [{"goods_description": "Cloth"}, {"quantity": 2}]
        self.assertRejected(bilty_payload(items=items), "items.1.goods_description")

    def test_charges_are_required(self):
        payload = bilty_payload()
        del payload["charges"]
        self.assertRejected(payload, "charges")

    def test_grand_total_must_be_a_number(self):
        self.assertRejected(bilty_payload(charges={"freight": 100}), "charges.grand_total")
        self.assertRejected(bilty_payload(charges={"grand_total": "100"}), "charges.grand_total")
        self.assertRejected(bilty_payload(charges={"grand_total": True}), "charges.grand_total")

    def test_bad_charge_value(self):
        self.assertRejected(bilty_payload(charges={"grand_total": 10, "pf": "lots"}), "charges.pf")

    def test_gstin_pattern(self):
        self.assertRejected(bilty_payload(consignor_gstin="08AAAHL5963P1Z"), "consignor_gstin")
        self.assertRejected(bilty_payload(consignee_gstin="not-a-gstin"), "consignee_gstin")

    def test_gstin_is_optional(self):
        bilty = BiltyService.create(bilty_payload(consignor_gstin="", consignee_gstin=None))
        self.assertEqual(bilty.consignor_gstin, "")

    def test_unknown_status(self):
        self.assertRejected(bilty_payload(status="lost"), "status")

    def test_payload_must_be_an_object(self):
        with self.assertRaises(ValidationError):
            BiltyService.create(["not", "a", "dict"])


class BiltyLifecycleTests(TransportTestCase):
    def test_update_keeps_number_and_replaces_items(self):
        bilty = BiltyService.create(bilty_payload())
        original_id, original_number = bilty.pk, bilty.number

        BiltyService.update(
            BiltyService.get(bilty.pk),
            bilty_payload(
                number=999,
                consignee_name="Rao & Sons",
                items=[
                    {"goods_description": "Yarn", "quantity": 3},
                    {"goods_description": "Dye", "quantity": 1},
                ],
            ),
            actor=self.user,
        )
        bilty = BiltyService.get(original_id)

        self.assertEqual(bilty.number, original_number)
        self.assertEqual(bilty.consignee_name, "Rao & Sons")
        self.assertEqual([i.goods_description for i in bilty.items.all()], ["Yarn", "Dye"])
        self.assertEqual(BiltyItem.objects.count(), 2)
        self.assertEqual(bilty.updated_by, self.user)
        self.assertEqual(self.counter(DocumentType.BILTY), 1)

    def test_partial_update_keeps_items_and_charges(self):
        bilty = BiltyService.create(bilty_payload())

        BiltyService.update(BiltyService.get(bilty.pk), {"status": "delivered"})
        bilty = BiltyService.get(bilty.pk)

        self.assertEqual(bilty.status, Bilty.Status.DELIVERED)
        self.assertEqual(bilty.items.count(), 1)
        self.assertEqual(bilty.grand_total, Decimal("1123.50"))

    def test_invalid_update_changes_nothing(self):
        bilty = BiltyService.create(bilty_payload())

        with self.assertRaises(ValidationError):
            BiltyService.update(BiltyService.get(bilty.pk), {"items": []})

        self.assertEqual(Bilty.objects.get(pk=bilty.pk).items.count(), 1)

    def test_deleted_numbers_are_not_reused(self):
        BiltyService.create(bilty_payload())
        second = BiltyService.create(bilty_payload())

        BiltyService.delete(second, actor=self.user)
        third = BiltyService.create(bilty_payload())

        self.assertEqual(third.number, 3)
        self.assertFalse(BiltyItem.objects.filter(bilty_id=second.pk).exists())
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.Action.DELETE, extra__number=2).exists())

    def test_get_missing(self):
        with self.assertRaises(NotFoundError):
            BiltyService.get(12345)
        with self.assertRaises(NotFoundError):
            BiltyService.get("abc")

    def test_persist_failure_keeps_number_consumed(self):
        with mock.patch.object(BiltyItem.objects, "bulk_create", side_effect=DatabaseError("disk full")):
            with self.assertLogs("transport.services", level="ERROR"):
                with self.assertRaises(PersistError) as ctx:
                    BiltyService.create(bilty_payload())

        self.assertEqual(ctx.exception.reason, "persist_failed")
        self.assertEqual(ctx.exception.extra["number"], 1)
        self.assertFalse(Bilty.objects.exists())
        self.assertEqual(self.counter(DocumentType.BILTY), 1)

        # The gap stays: the next bilty gets 2
        self.assertEqual(BiltyService.create(bilty_payload()).number, 2)

    def test_contention_surfaces_and_saves_nothing(self):
        class BusyStore:
            def read(self, document_type, scope_key):
                return 0

            def commit(self, document_type, scope_key, previous, new):
                return False

        with self.assertRaises(AllocationContention):
            BiltyService.create(bilty_payload(), allocator=Allocator(store=BusyStore(), max_retries=2))
        self.assertFalse(Bilty.objects.exists())


# ===================================================================
# Challan service
# ===================================================================

class ChallanServiceTests(TransportTestCase):
    def test_create_numbers_and_totals(self):
        challan = ChallanService.create(challan_payload(), actor=self.user)
        challan.refresh_from_db()

        self.assertEqual(challan.number, 1)
        self.assertEqual(challan.cash_or_due, Challan.Settlement.CASH)
        self.assertEqual(challan.payment_mode, "Cash")
        self.assertEqual(
            [item.total for item in challan.items.all()],
            [Decimal("50.00"), Decimal("100.00")],
        )
        self.assertEqual(challan.total_freight, Decimal("150.00"))
        self.assertEqual(challan.total_commission, Decimal("200.00"))

    def test_challan_and_bilty_counters_are_separate(self):
        BiltyService.create(bilty_payload())
        BiltyService.create(bilty_payload())

        self.assertEqual(ChallanService.create(challan_payload()).number, 1)
        self.assertEqual(self.counter(DocumentType.BILTY), 2)
        self.assertEqual(self.counter(DocumentType.CHALLAN), 1)

    def test_empty_items_consume_no_number(self):
        with self.assertRaises(ValidationError) as ctx:
            ChallanService.create(challan_payload(items=[]))

        self.assertIn("items", ctx.exception.message_dict)
        self.assertFalse(DocumentCounter.objects.filter(document_type=DocumentType.CHALLAN).exists())
        self.assertEqual(ChallanService.create(challan_payload()).number, 1)

    def test_required_fields(self):
        payload = challan_payload()
        del payload["truck_owner_name"]
        with self.assertRaises(ValidationError) as ctx:
            ChallanService.create(payload)
        self.assertIn("truck_owner_name", ctx.exception.message_dict)

    def test_update_recomputes_totals(self):
        challan = ChallanService.create(challan_payload())

        ChallanService.update(
            ChallanService.get(challan.pk),
            {"commission": 50, "items": [{"bilty_no": "7", "weight": 2, "rate": 1.5}]},
        )
        challan = ChallanService.get(challan.pk)

        self.assertEqual(challan.number, 1)
        self.assertEqual(challan.total_freight, Decimal("3.00"))
        self.assertEqual(challan.total_commission, Decimal("50.00"))

    def test_item_model_prices_missing_total(self):
        challan = ChallanService.create(challan_payload())
        item = ChallanItem.objects.create(challan=challan, bilty_no="9", weight=Decimal("4"), rate=Decimal("2.5"))
        self.assertEqual(item.total, Decimal("10.00"))


# ===================================================================
# HTTP API
# ===================================================================

class BiltyApiTests(TransportTestCase):
    def setUp(self):
        super().setUp()
        self.client.force_login(self.user)
        self.collection_url = reverse("transport:bilty_collection")

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def test_anonymous_is_rejected(self):
        self.client.logout()
        response = self.post_json(self.collection_url, bilty_payload())
        self.assertEqual(response.status_code, 401)
        self.assertFalse(Bilty.objects.exists())

    def test_create_returns_201_with_number(self):
        response = self.post_json(self.collection_url, bilty_payload())
        body = response.json()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(body["number"], 1)
        self.assertEqual(body["display_number"], "1")
        self.assertTrue(Bilty.objects.filter(pk=body["id"], number=1).exists())

    def test_validation_error_body(self):
        response = self.post_json(self.collection_url, bilty_payload(items=[]))
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertEqual(body["reason"], "validation_failed")
        self.assertIn("items", body["errors"])

    def test_invalid_json(self):
        response = self.client.post(self.collection_url, data="{oops", content_type="application/json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["reason"], "bad_request")

    def test_contention_is_503(self):
        with mock.patch("transport.services.next_number", side_effect=AllocationContention("busy")):
            response = self.post_json(self.collection_url, bilty_payload())

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["reason"], "allocation_contention")

    def test_persist_failure_is_500(self):
        with mock.patch.object(BiltyItem.objects, "bulk_create", side_effect=DatabaseError("disk full")):
            with self.assertLogs("transport.services", level="ERROR"):
                response = self.post_json(self.collection_url, bilty_payload())

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["reason"], "persist_failed")

    def test_list_filters(self):
        BiltyService.create(bilty_payload(consignor_name="Sharma Textiles", bilty_date="2025-06-01"))
        BiltyService.create(bilty_payload(consignor_name="Gupta Metals", bilty_date="2025-06-02", status="delivered"))

        def numbers(**params):
            response = self.client.get(self.collection_url, params)
            self.assertEqual(response.status_code, 200)
            return [b["number"] for b in response.json()["bilties"]]

        self.assertEqual(numbers(), [2, 1])
        self.assertEqual(numbers(search="gupta"), [2])
        self.assertEqual(numbers(search="1"), [1])
        self.assertEqual(numbers(status="delivered"), [2])
        self.assertEqual(numbers(date="2025-06-01"), [1])

    def test_list_query_count_does_not_grow_with_rows(self):
        BiltyService.create(bilty_payload())
        with CaptureQueriesContext(connection) as one:
            self.client.get(self.collection_url)

        BiltyService.create(bilty_payload())
        BiltyService.create(bilty_payload())
        with CaptureQueriesContext(connection) as three:
            response = self.client.get(self.collection_url)

        self.assertEqual(len(response.json()["bilties"]), 3)
        self.assertEqual(len(three), len(one))

    def test_list_rejects_bad_date(self):
        response = self.client.get(self.collection_url, {"date": "first of june"})
        self.assertEqual(response.status_code, 400)

    def test_detail_update_delete(self):
        bilty = BiltyService.create(bilty_payload())
        url = reverse("transport:bilty_detail", args=[bilty.pk])

        body = self.client.get(url).json()["bilty"]
        self.assertEqual(body["number"], 1)
        self.assertEqual(body["charges"]["grand_total"], 1123.5)
        self.assertEqual(body["items"][0]["goods_description"], "Cloth bales")

        # A GET body can be sent back as is
        body["status"] = "in_transit"
        response = self.client.put(url, data=json.dumps(body), content_type="application/json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["bilty"]["status"], "in_transit")
        self.assertEqual(response.json()["bilty"]["number"], 1)

        self.assertEqual(self.client.delete(url).status_code, 200)
        self.assertEqual(self.client.get(url).status_code, 404)
        self.assertEqual(self.client.get(url).json()["reason"], "not_found")

    def test_method_not_allowed(self):
        response = self.client.patch(self.collection_url)
        self.assertEqual(response.status_code, 405)

    @override_settings(COMPANY=COMPANY)
    def test_pdf(self):
        bilty = BiltyService.create(bilty_payload())

        with mock.patch("core.pdf.write_pdf", return_value=b"%PDF-1.4 test") as write_pdf:
            response = self.client.get(reverse("transport:bilty_pdf", args=[bilty.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertIn('filename="bilty-1.pdf"', response["Content-Disposition"])
        html = write_pdf.call_args.args[0]
        self.assertIn("Sharma Textiles", html)
        self.assertIn("Test Carrier", html)
        self.assertEqual(html.count('class="copy"'), 3)

    def test_pdf_missing_bilty(self):
        response = self.client.get(reverse("transport:bilty_pdf", args=[999]))
        self.assertEqual(response.status_code, 404)


class ChallanApiTests(TransportTestCase):
    def setUp(self):
        super().setUp()
        self.client.force_login(self.user)

    def test_create_list_and_detail(self):
        response = self.client.post(
            reverse("transport:challan_collection"),
            data=json.dumps(challan_payload()),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        challan_id = response.json()["id"]

        listing = self.client.get(reverse("transport:challan_collection")).json()["challans"]
        self.assertEqual([c["id"] for c in listing], [challan_id])

        detail = self.client.get(reverse("transport:challan_detail", args=[challan_id])).json()["challan"]
        self.assertEqual(detail["total_freight"], 150.0)
        self.assertEqual(len(detail["items"]), 2)

    def test_empty_items_is_400(self):
        response = self.client.post(
            reverse("transport:challan_collection"),
            data=json.dumps(challan_payload(items=[])),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIsNone(self.counter(DocumentType.CHALLAN))

    @override_settings(COMPANY=COMPANY)
    def test_pdf_rows_are_completed_from_bilties(self):
        bilty = BiltyService.create(bilty_payload())
        challan = ChallanService.create(challan_payload(items=[
            {"bilty_no": str(bilty.number), "freight": 1040, "weight": 480},
            {"bilty_no": "77", "freight": 300, "weight": 12},
        ]))

        rows = challan_rows(challan)
        self.assertEqual(rows[0]["consignor_name"], "Sharma Textiles")
        self.assertEqual(rows[0]["description"], "Cloth bales")
        self.assertEqual(rows[0]["weight"], Decimal("500.000"))
        self.assertEqual(rows[1]["consignor_name"], "")
        self.assertEqual(rows[1]["amount"], Decimal("300.00"))

        with mock.patch("core.pdf.write_pdf", return_value=b"%PDF-1.4 test") as write_pdf:
            response = self.client.get(reverse("transport:challan_pdf", args=[challan.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertIn("Reddy Traders", write_pdf.call_args.args[0])

    @override_settings(COMPANY=COMPANY)
    def test_pdf_with_unknown_bilty_numbers(self):
        challan = ChallanService.create(challan_payload(items=[
            {"bilty_no": "404", "freight": 250, "weight": 8},
            {"bilty_no": "GR-7", "freight": 120, "weight": 3},
        ]))

        with mock.patch("core.pdf.write_pdf", return_value=b"%PDF-1.4 test") as write_pdf:
            response = self.client.get(reverse("transport:challan_pdf", args=[challan.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertIn('filename="challan-1.pdf"', response["Content-Disposition"])
        html = write_pdf.call_args.args[0]
        self.assertIn("404", html)
        self.assertIn("GR-7", html)
        self.assertNotIn("Sharma Textiles", html)

    def test_list_formats_numbers_without_writing(self):
        NumberingScheme.objects.create(document_type=DocumentType.CHALLAN, prefix="CH")
        for _ in range(3):
            ChallanService.create(challan_payload())

        response = self.client.get(reverse("transport:challan_collection"))
        self.assertEqual(
            [c["display_number"] for c in response.json()["challans"]],
            ["CH/3", "CH/2", "CH/1"],
        )

        NumberingScheme.objects.all().delete()
        response = self.client.get(reverse("transport:challan_collection"))
        self.assertEqual(response.json()["challans"][0]["display_number"], "3")
        self.assertFalse(NumberingScheme.objects.exists())


# ===================================================================
# GST report export
# ===================================================================

@override_settings(COMPANY=COMPANY)
class GstReportTests(TransportTestCase):
    def setUp(self):
        super().setUp()
        self.client.force_login(self.user)
        BiltyService.create(bilty_payload(bilty_date="2025-05-31"))
        BiltyService.create(bilty_payload(bilty_date="2025-06-01"))
        BiltyService.create(bilty_payload(bilty_date="2025-06-15", paid_by=""))

    def fetch(self, **params):
        response = self.client.get(reverse("transport:bilty_export"), params)
        self.assertEqual(response.status_code, 200)
        return response, load_workbook(io.BytesIO(response.content)).active

    def test_layout_and_rows(self):
        response, ws = self.fetch(**{"from": "2025-06-01", "to": "2025-06-30"})

        self.assertEqual(
            response["Content-Type"],
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
        self.assertIn("gst_report.xlsx", response["Content-Disposition"])
        self.assertEqual(ws.title, "GST Report")
        self.assertEqual(ws["A1"].value, "Test Carrier")
        self.assertEqual(ws["A4"].value, "GST REPORT")
        self.assertEqual(ws["C5"].value, "01/06/2025")
        self.assertEqual([c.value for c in ws[6]], GST_REPORT_HEADERS)

        data = [[c.value for c in row] for row in ws.iter_rows(min_row=7)]
        self.assertEqual([r[1] for r in data], [2, 3])
        self.assertEqual(data[0][0], "01/06/2025")
        self.assertEqual(data[0][6], 1123.5)
        self.assertEqual(data[0][9], "consignee")
        self.assertEqual(data[1][9], "consignee")
        self.assertEqual(ws.column_dimensions["C"].width, 20)

    def test_without_range_exports_everything(self):
        _, ws = self.fetch()
        self.assertEqual(ws.max_row, 6 + 3)

    def test_inverted_range_is_rejected(self):
        response = self.client.get(reverse("transport:bilty_export"), {"from": "2025-07-01", "to": "2025-06-01"})
        self.assertEqual(response.status_code, 400)


# ===================================================================
# Bulk import
# ===================================================================

class BulkImportTests(TransportTestCase):
    def setUp(self):
        super().setUp()
        self.client.force_login(self.user)
        self.url = reverse("transport:bilty_bulk_import")

    def rows(self):
        return [
            {
                "number": 100,
                "bilty_date": "05-04-2025",
                "consignor_name": "Sharma Textiles",
                "consignee_name": "Reddy Traders",
                "total_amount": "₹1,250.00",
                "sgst": "31.25",
                "cgst": "31.25",
            },
            {
                "G.R. No.": "101",
                "Date": "6/4/2025",
                "Consignor": "Gupta Metals",
                "Consignor GSTIN": "08AAAHL5963P1ZK",
                "Consignee": "Rao & Sons",
                "Tot. Amt.": 900,
                "Paid by": "consignor",
            },
            {"number": 102, "bilty_date": "31-02-2025", "consignor_name": "X", "consignee_name": "Y", "total_amount": 5},
            {"number": 100, "bilty_date": "07-04-2025", "consignor_name": "X", "consignee_name": "Y", "total_amount": 5},
        ]

    def test_parsers(self):
        self.assertEqual(parse_import_date("05-04-2025"), datetime.date(2025, 4, 5))
        self.assertEqual(parse_import_date("5/4/2025"), datetime.date(2025, 4, 5))
        self.assertEqual(parse_import_date("2025-04-05"), datetime.date(2025, 4, 5))
        self.assertIsNone(parse_import_date("yesterday"))
        self.assertEqual(parse_amount("₹1,250.00"), Decimal("1250.00"))
        self.assertEqual(parse_amount("(500)"), Decimal("500"))
        self.assertEqual(parse_amount("n/a"), Decimal("0.00"))

    def test_import_rows_and_raise_counter(self):
        result = import_bilties(rows_from_json(self.rows()), actor=self.user)

        self.assertEqual(result.total, 4)
        self.assertEqual(result.succeeded, 2)
        self.assertEqual([e["row"] for e in result.errors], [3, 4])
        self.assertIn("invalid date", result.errors[0]["error"])
        self.assertEqual(result.errors[1]["error"], "number already exists")

        gupta = Bilty.objects.get(number=101)
        self.assertEqual(gupta.bilty_date, datetime.date(2025, 4, 6))
        self.assertEqual(gupta.from_city, "JODHPUR")
        self.assertEqual(gupta.to_city, "HYDERABAD")
        self.assertEqual(gupta.paid_by, "consignor")
        self.assertEqual(gupta.items.get().goods_description, "Goods")
        self.assertEqual(Bilty.objects.get(number=100).paid_by, "EXEMPTED")

        self.assertEqual(self.counter(DocumentType.BILTY), 101)
        self.assertEqual(BiltyService.create(bilty_payload()).number, 102)
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.Action.IMPORT).exists())

    def test_deleted_number_is_not_issued_again(self):
        for _ in range(3):
            BiltyService.create(bilty_payload())
        BiltyService.delete(Bilty.objects.get(number=2))

        result = import_bilties(rows_from_json([self.rows()[1] | {"G.R. No.": 2}]))

        self.assertEqual(result.succeeded, 0)
        self.assertEqual(result.errors[0]["error"], "number already issued")
        self.assertFalse(Bilty.objects.filter(number=2).exists())
        self.assertEqual(self.counter(DocumentType.BILTY), 3)

    def test_numbers_at_or_below_counter_are_rejected(self):
        BiltyService.create(bilty_payload())
        BiltyService.create(bilty_payload())

        rows = [self.rows()[1] | {"G.R. No.": number} for number in (2, 3)]
        result = import_bilties(rows_from_json(rows))

        self.assertEqual([e["number"] for e in result.errors], [2])
        self.assertEqual([r["number"] for r in result.results], [3])
        self.assertEqual(self.counter(DocumentType.BILTY), 3)
        self.assertEqual(BiltyService.create(bilty_payload()).number, 4)

    def test_json_endpoint(self):
        response = self.client.post(
            self.url,
            data=json.dumps({"bilties": self.rows()}),
            content_type="application/json",
        )
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual((body["succeeded"], body["failed"], body["total"]), (2, 2, 4))

    def test_empty_list_is_rejected(self):
        response = self.client.post(self.url, data=json.dumps({"bilties": []}), content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_xlsx_upload(self):
        wb = Workbook()
        ws = wb.active
        ws.append(["GST REPORT"])
        ws.append(GST_REPORT_HEADERS + ["From", "To", "Truck No."])
        ws.append(["10/04/2025", 250, "Sharma Textiles", "", "Reddy Traders", "", 1500, 37.5, 37.5, "consignee",
                   "PALI", "PUNE", "rj22 ga 0001"])
        ws.append([None] * 13)
        buffer = io.BytesIO()
        wb.save(buffer)

        upload = SimpleUploadedFile(
            "bilties.xlsx",
            buffer.getvalue(),
            content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
        response = self.client.post(self.url, {"file": upload})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["succeeded"], 1)
        bilty = Bilty.objects.get(number=250)
        self.assertEqual((bilty.from_city, bilty.to_city, bilty.truck_no), ("PALI", "PUNE", "RJ22 GA 0001"))
        self.assertEqual(bilty.grand_total, Decimal("1500.00"))

    def test_unreadable_upload(self):
        upload = SimpleUploadedFile("bilties.xlsx", b"not a workbook")
        response = self.client.post(self.url, {"file": upload})
        self.assertEqual(response.status_code, 400)
        self.assertIn("file", response.json()["errors"])


# ===================================================================
# Suggestions / dashboard
# ===================================================================

class SuggestionTests(TransportTestCase):
    def setUp(self):
        super().setUp()
        BiltyService.create(bilty_payload(consignor_name="Sharma Textiles"))
        BiltyService.create(bilty_payload(consignor_name="Sharma Textiles"))
        BiltyService.create(bilty_payload(consignor_name="Verma Steel"))
        BiltyService.create(bilty_payload(consignor_name="Gupta Metals"))

    def test_levenshtein(self):
        self.assertEqual(levenshtein("kitten", "sitting"), 3)
        self.assertEqual(levenshtein("", "abc"), 3)
        self.assertEqual(levenshtein("same", "same"), 0)

    def test_match_score(self):
        self.assertEqual(match_score("sharma textiles", "Sharma Textiles"), 100)
        self.assertEqual(match_score("shar", "Sharma Textiles"), 90)
        self.assertEqual(match_score("text", "Sharma Textiles"), 80)
        self.assertAlmostEqual(match_score("verma", "varma"), 56.0)

    def test_ranked_distinct_values(self):
        suggestions = suggest("consignor", "sharma")
        self.assertEqual([s["value"] for s in suggestions], ["Sharma Textiles"])
        self.assertEqual(suggestions[0]["score"], 90)
        self.assertEqual(suggestions[0]["field"], "consignor")

        suggestions = suggest("consignor", "varma steel")
        scores = [s["score"] for s in suggestions]
        self.assertEqual(suggestions[0]["value"], "Verma Steel")
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertTrue(all(score > 30 for score in scores))

    def test_without_term_returns_recent_values(self):
        values = [s["value"] for s in suggest("consignor")]
        self.assertEqual(values, ["Gupta Metals", "Verma Steel", "Sharma Textiles"])

    def test_unknown_field(self):
        with self.assertRaises(ValidationError):
            suggest("driver", "x")

    def test_endpoint(self):
        self.client.force_login(self.user)
        url = reverse("transport:bilty_suggestions")

        response = self.client.get(url, {"field": "truck", "q": "rj19"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["suggestions"][0]["value"], "RJ19 GB 4521")

        self.assertEqual(self.client.get(url).status_code, 400)
        self.assertEqual(self.client.get(url, {"field": "driver"}).status_code, 400)


class DashboardTests(TransportTestCase):
    def test_counts_by_bilty_date(self):
        today = datetime.date(2025, 6, 30)
        for days_ago in (0, 5, 20, 60, 100):
            day = today - datetime.timedelta(days=days_ago)
            BiltyService.create(bilty_payload(bilty_date=day.isoformat()))

        stats = dashboard_stats(today=today)

        self.assertEqual(stats["today"], 1)
        self.assertEqual(stats["last_7_days"], 2)
        self.assertEqual(stats["last_30_days"], 3)
        self.assertEqual(stats["last_90_days"], 4)
        self.assertEqual(stats["total"], 5)
        self.assertEqual([b.number for b in stats["recent"]], [5, 4, 3, 2, 1])

    def test_endpoint(self):
        self.client.force_login(self.user)
        BiltyService.create(bilty_payload())

        response = self.client.get(reverse("transport:dashboard_stats"))
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["total"], 1)
        self.assertEqual(body["recent"][0]["number"], 1)
        self.assertNotIn("items", body["recent"][0])
