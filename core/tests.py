import datetime
import json
import threading
from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import ValidationError
from django.test import RequestFactory, SimpleTestCase, TestCase, TransactionTestCase, override_settings

from core.api import json_api, parse_date_param, parse_json_body
from core.domain.dispatcher import DomainEventDispatcher
from core.domain.events import DomainEvent
from core.exceptions import AllocationContention
from core.models import AuditLog, DocumentCounter, DocumentType, NumberingScheme
from core.services.audit import log_event
from core.services.numbering import Allocator, CounterStore, next_number


class MemoryCounterStore:
    """
    Counter store kept in a dict; the lock makes commit() an atomic
    compare-and-swap like the conditional UPDATE of CounterStore.
    """

    def __init__(self):
        self.values = {}
        self.lock = threading.Lock()
        self.commits = 0

    def read(self, document_type, scope_key):
        return self.values.get((document_type, scope_key))

    def commit(self, document_type, scope_key, previous, new):
        with self.lock:
            self.commits += 1
            if self.values.get((document_type, scope_key)) != previous:
                return False
            self.values[(document_type, scope_key)] = new
            return True


class RacingCounterStore(CounterStore):
    """
    Before each of the first `races` commits, another writer allocates
    a number for the same counter, so that commit loses.
    """

    def __init__(self, races=1):
        self.races = races
        self.attempts = 0

    def commit(self, document_type, scope_key, previous, new):
        self.attempts += 1
        if self.races:
            self.races -= 1
            Allocator(store=CounterStore()).next_number(document_type, scope_key)
        return super().commit(document_type, scope_key, previous, new)


class AlwaysConflictingStore:
    def __init__(self):
        self.attempts = 0

    def read(self, document_type, scope_key):
        return 7

    def commit(self, document_type, scope_key, previous, new):
        self.attempts += 1
        return False


# ===================================================================
# Counter store / allocator
# ===================================================================

class CounterStoreTests(TestCase):
    def setUp(self):
        self.store = CounterStore()

    def test_read_absent_counter_is_none(self):
        self.assertIsNone(self.store.read(DocumentType.BILTY, ""))

    def test_commit_creates_then_swaps(self):
        self.assertTrue(self.store.commit(DocumentType.BILTY, "", None, 1))
        self.assertEqual(self.store.read(DocumentType.BILTY, ""), 1)

        self.assertTrue(self.store.commit(DocumentType.BILTY, "", 1, 2))
        self.assertEqual(self.store.read(DocumentType.BILTY, ""), 2)

    def test_commit_with_stale_previous_is_a_conflict(self):
        self.store.commit(DocumentType.BILTY, "", None, 1)
        self.store.commit(DocumentType.BILTY, "", 1, 2)

        self.assertFalse(self.store.commit(DocumentType.BILTY, "", 1, 2))
        self.assertEqual(self.store.read(DocumentType.BILTY, ""), 2)

    def test_second_insert_is_a_conflict(self):
        self.assertTrue(self.store.commit(DocumentType.CHALLAN, "", None, 1))
        self.assertFalse(self.store.commit(DocumentType.CHALLAN, "", None, 1))
        self.assertEqual(DocumentCounter.objects.filter(document_type=DocumentType.CHALLAN).count(), 1)

    def test_counters_never_move_backwards(self):
        self.store.commit(DocumentType.BILTY, "", None, 5)
        with self.assertRaises(ValueError):
            self.store.commit(DocumentType.BILTY, "", 5, 5)


class AllocatorTests(TestCase):
    def test_first_number_is_one(self):
        self.assertEqual(Allocator().next_number(DocumentType.BILTY, ""), 1)

    def test_numbers_are_sequential(self):
        allocator = Allocator()
        numbers = [allocator.next_number(DocumentType.BILTY, "") for _ in range(5)]
        self.assertEqual(numbers, [1, 2, 3, 4, 5])

    def test_types_and_scopes_are_independent(self):
        allocator = Allocator()
        self.assertEqual(allocator.next_number(DocumentType.BILTY, ""), 1)
        self.assertEqual(allocator.next_number(DocumentType.BILTY, ""), 2)
        self.assertEqual(allocator.next_number(DocumentType.CHALLAN, ""), 1)
        self.assertEqual(allocator.next_number(DocumentType.BILTY, "2025-26"), 1)

    def test_start_applies_to_absent_counter_only(self):
        allocator = Allocator()
        self.assertEqual(allocator.next_number(DocumentType.BILTY, "", start=100), 100)
        self.assertEqual(allocator.next_number(DocumentType.BILTY, "", start=100), 101)

    def test_conflict_is_retried(self):
        store = RacingCounterStore(races=1)
        number = Allocator(store=store, max_retries=3).next_number(DocumentType.BILTY, "")

        # The racing writer took 1
        self.assertEqual(number, 2)
        self.assertEqual(store.attempts, 2)
        self.assertEqual(CounterStore().read(DocumentType.BILTY, ""), 2)

    def test_retry_budget_exhausted_raises_contention(self):
        store = AlwaysConflictingStore()
        with self.assertRaises(AllocationContention) as ctx:
            Allocator(store=store, max_retries=3).next_number(DocumentType.BILTY, "")

        self.assertEqual(store.attempts, 4)
        self.assertEqual(ctx.exception.reason, "allocation_contention")
        self.assertEqual(ctx.exception.status_code, 503)

    @override_settings(NUMBERING={"DEFAULT_RESET": "never", "MAX_RETRIES": 2})
    def test_max_retries_from_settings(self):
        self.assertEqual(Allocator().max_retries, 2)

    def test_ensure_at_least_raises_counter(self):
        allocator = Allocator()
        self.assertEqual(allocator.ensure_at_least(DocumentType.BILTY, "", 40), 40)
        self.assertEqual(allocator.next_number(DocumentType.BILTY, ""), 41)

    def test_ensure_at_least_never_lowers_counter(self):
        allocator = Allocator()
        allocator.ensure_at_least(DocumentType.BILTY, "", 40)
        self.assertEqual(allocator.ensure_at_least(DocumentType.BILTY, "", 10), 40)
        self.assertEqual(allocator.next_number(DocumentType.BILTY, ""), 41)


class ConcurrentAllocationTests(SimpleTestCase):
    def test_concurrent_allocations_are_distinct_and_gapless(self):
        workers = 16
        store = MemoryCounterStore()
        allocator = Allocator(store=store, max_retries=workers)
        barrier = threading.Barrier(workers)
        numbers = []
        numbers_lock = threading.Lock()

        def allocate():
            barrier.wait()
            number = allocator.next_number(DocumentType.CHALLAN, "")
            with numbers_lock:
                numbers.append(number)

        threads = [threading.Thread(target=allocate) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(sorted(numbers), list(range(1, workers + 1)))
        self.assertEqual(store.read(DocumentType.CHALLAN, ""), workers)


class InterleavedCommitTests(TransactionTestCase):
    """
    Two writers read the same counter value, then both try to commit.
    Each commit runs in autocommit mode, as it does in a request.
    """

    def test_second_insert_from_same_read_loses(self):
        first, second = CounterStore(), CounterStore()
        seen_by_first = first.read(DocumentType.BILTY, "")
        seen_by_second = second.read(DocumentType.BILTY, "")
        self.assertIsNone(seen_by_first)
        self.assertIsNone(seen_by_second)

        self.assertTrue(first.commit(DocumentType.BILTY, "", seen_by_first, 1))
        self.assertFalse(second.commit(DocumentType.BILTY, "", seen_by_second, 1))

        self.assertEqual(DocumentCounter.objects.get(document_type=DocumentType.BILTY).current_value, 1)

    def test_second_update_from_same_read_loses(self):
        CounterStore().commit(DocumentType.CHALLAN, "", None, 7)
        first, second = CounterStore(), CounterStore()
        seen_by_first = first.read(DocumentType.CHALLAN, "")
        seen_by_second = second.read(DocumentType.CHALLAN, "")

        self.assertTrue(first.commit(DocumentType.CHALLAN, "", seen_by_first, seen_by_first + 1))
        self.assertFalse(second.commit(DocumentType.CHALLAN, "", seen_by_second, seen_by_second + 1))
        self.assertEqual(second.read(DocumentType.CHALLAN, ""), 8)

        # The loser re-reads and wins the next round
        retry_from = second.read(DocumentType.CHALLAN, "")
        self.assertTrue(second.commit(DocumentType.CHALLAN, "", retry_from, retry_from + 1))
        self.assertEqual(first.read(DocumentType.CHALLAN, ""), 9)

    def test_allocators_sharing_a_row_hand_out_distinct_numbers(self):
        a, b = Allocator(), Allocator()
        numbers = [a.next_number(DocumentType.BILTY, "2025-26"), b.next_number(DocumentType.BILTY, "2025-26")]
        numbers += [b.next_number(DocumentType.BILTY, "2025-26"), a.next_number(DocumentType.BILTY, "2025-26")]

        self.assertEqual(numbers, [1, 2, 3, 4])


# ===================================================================
# Numbering scheme
# ===================================================================

class NumberingSchemeTests(TestCase):
    def test_scope_for_each_reset_policy(self):
        scheme = NumberingScheme(document_type=DocumentType.BILTY)

        scheme.reset = NumberingScheme.ResetPolicy.NEVER
        self.assertEqual(scheme.scope_for(datetime.date(2025, 6, 1)), "")

        scheme.reset = NumberingScheme.ResetPolicy.YEAR
        self.assertEqual(scheme.scope_for(datetime.date(2025, 6, 1)), "2025")

        scheme.reset = NumberingScheme.ResetPolicy.FISCAL_YEAR
        self.assertEqual(scheme.scope_for(datetime.date(2025, 3, 31)), "2024-25")
        self.assertEqual(scheme.scope_for(datetime.date(2025, 4, 1)), "2025-26")
        self.assertEqual(scheme.scope_for(datetime.date(2099, 12, 1)), "2099-00")

    def test_display_number(self):
        scheme = NumberingScheme(document_type=DocumentType.CHALLAN, prefix="CH")
        self.assertEqual(scheme.display_number(17, "2025-26"), "CH/2025-26/17")
        self.assertEqual(scheme.display_number(17, ""), "CH/17")
        self.assertEqual(NumberingScheme(prefix="").display_number(3), "3")

    def test_get_for_creates_default_row_once(self):
        first = NumberingScheme.get_for(DocumentType.BILTY)
        second = NumberingScheme.get_for(DocumentType.BILTY)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(first.reset, NumberingScheme.ResetPolicy.NEVER)
        self.assertEqual(first.start, 1)

    @override_settings(NUMBERING={"DEFAULT_RESET": "fiscal_year", "MAX_RETRIES": 5})
    def test_get_for_uses_configured_default_reset(self):
        scheme = NumberingScheme.get_for(DocumentType.CHALLAN)
        self.assertEqual(scheme.reset, NumberingScheme.ResetPolicy.FISCAL_YEAR)

    def test_start_below_one_is_rejected(self):
        scheme = NumberingScheme(document_type=DocumentType.BILTY, start=0)
        with self.assertRaises(ValidationError):
            scheme.full_clean()

    def test_next_number_restarts_every_fiscal_year(self):
        NumberingScheme.objects.create(
            document_type=DocumentType.BILTY,
            reset=NumberingScheme.ResetPolicy.FISCAL_YEAR,
        )

        a = next_number(DocumentType.BILTY, on_date=datetime.date(2025, 3, 30))
        b = next_number(DocumentType.BILTY, on_date=datetime.date(2025, 3, 31))
        c = next_number(DocumentType.BILTY, on_date=datetime.date(2025, 4, 1))

        self.assertEqual((a.scope_key, a.number), ("2024-25", 1))
        self.assertEqual((b.scope_key, b.number), ("2024-25", 2))
        self.assertEqual((c.scope_key, c.number), ("2025-26", 1))

    def test_next_number_honours_scheme_start(self):
        NumberingScheme.objects.create(document_type=DocumentType.CHALLAN, start=500)
        self.assertEqual(next_number(DocumentType.CHALLAN).number, 500)
        self.assertEqual(next_number(DocumentType.CHALLAN).number, 501)


# ===================================================================
# Audit log / domain events
# ===================================================================

class AuditLogTests(TestCase):
    def test_log_event_with_target_and_actor(self):
        user = get_user_model().objects.create_user(username="clerk", password="x")
        scheme = NumberingScheme.get_for(DocumentType.BILTY)

        entry = log_event(
            action=AuditLog.Action.UPDATE,
            message="Scheme touched.",
            actor=user,
            target=scheme,
            extra={"field": "prefix"},
        )

        self.assertEqual(entry.actor, user)
        self.assertEqual(entry.target, scheme)
        self.assertEqual(entry.extra, {"field": "prefix"})

    def test_anonymous_actor_is_not_stored(self):
        entry = log_event(action="other", message="x", actor=AnonymousUser())
        self.assertIsNone(entry.actor)

    def test_unknown_action_is_rejected(self):
        with self.assertRaises(ValueError):
            log_event(action="explode")


@dataclass(frozen=True)
class SomethingHappened(DomainEvent):
    what: str


class DispatcherTests(SimpleTestCase):
    def test_handlers_run_and_failures_are_contained(self):
        dispatcher = DomainEventDispatcher()
        seen = []

        @dispatcher.register_handler(SomethingHappened)
        def broken(event):
            raise RuntimeError("boom")

        @dispatcher.register_handler(SomethingHappened)
        def recorder(event):
            seen.append(event.what)

        with self.assertLogs("core.domain.dispatcher", level="ERROR"):
            dispatcher.emit(SomethingHappened(what="truck left"))

        self.assertEqual(seen, ["truck left"])

    def test_registering_twice_is_a_noop(self):
        dispatcher = DomainEventDispatcher()

        def handler(event):
            pass

        dispatcher.register_handler(SomethingHappened)(handler)
        dispatcher.register_handler(SomethingHappened)(handler)
        self.assertEqual(dispatcher.handlers_for(SomethingHappened), [handler])


# ===================================================================
# JSON API helpers
# ===================================================================

@json_api(methods=("POST",))
def _echo_view(request):
    data = parse_json_body(request)
    if data.get("fail") == "validation":
        raise ValidationError({"name": "Name is required."})
    if data.get("fail") == "contention":
        raise AllocationContention("busy")
    return {"echo": data}, 201


class JsonApiTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.user = get_user_model().objects.create_user(username="clerk", password="x")

    def _post(self, body, user=None):
        request = self.factory.post("/x/", data=body, content_type="application/json")
        request.user = user or self.user
        return _echo_view(request)

    def test_success_with_status(self):
        response = self._post(json.dumps({"a": 1}))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(json.loads(response.content), {"echo": {"a": 1}})

    def test_anonymous_is_unauthorized(self):
        response = self._post("{}", user=AnonymousUser())
        self.assertEqual(response.status_code, 401)
        self.assertEqual(json.loads(response.content)["reason"], "unauthorized")

    def test_wrong_method(self):
        request = self.factory.get("/x/")
        request.user = self.user
        response = _echo_view(request)
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response["Allow"], "POST")

    def test_invalid_json_is_bad_request(self):
        response = self._post("{not json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.content)["reason"], "bad_request")

    def test_validation_error_body(self):
        response = self._post(json.dumps({"fail": "validation"}))
        body = json.loads(response.content)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(body["reason"], "validation_failed")
        self.assertEqual(body["errors"], {"name": ["Name is required."]})

    def test_contention_is_503(self):
        response = self._post(json.dumps({"fail": "contention"}))
        self.assertEqual(response.status_code, 503)
        self.assertEqual(json.loads(response.content)["reason"], "allocation_contention")

    def test_parse_date_param(self):
        self.assertEqual(parse_date_param("2025-04-01"), datetime.date(2025, 4, 1))
        self.assertEqual(parse_date_param("2025-04-01T10:30:00Z"), datetime.date(2025, 4, 1))
        self.assertIsNone(parse_date_param("01/04/2025"))
        self.assertIsNone(parse_date_param("2025-13-45"))
        self.assertIsNone(parse_date_param(""))
