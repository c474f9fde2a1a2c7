# core/services/numbering.py
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.exceptions import AllocationContention
from core.models import DocumentCounter, NumberingScheme

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


@dataclass(frozen=True)
class Allocation:
    """
    Result of a successful allocation: the number and the scope it belongs to.
    """
    document_type: str
    scope_key: str
    number: int


class CounterStore:
    """
    Persisted counters, one row per (document_type, scope_key).

    The only write is commit(), a compare-and-swap: it succeeds only when the
    stored value still equals `previous`. Nothing here takes a lock that
    outlives the single UPDATE/INSERT statement.
    """

    def read(self, document_type: str, scope_key: str) -> Optional[int]:
        return (
            DocumentCounter.objects
            .filter(document_type=document_type, scope_key=scope_key)
            .values_list("current_value", flat=True)
            .first()
        )

    def commit(
        self,
        document_type: str,
        scope_key: str,
        previous: Optional[int],
        new: int,
    ) -> bool:
        """
        Store `new` if the counter still holds `previous`.

        previous=None means "the row did not exist when I read it": the row
        is inserted, and a unique-constraint violation counts as a conflict.
        """
        if previous is not None and new <= previous:
            raise ValueError("Counters only move forward.")

        if previous is None:
            try:
                with transaction.atomic():
                    DocumentCounter.objects.create(
                        document_type=document_type,
                        scope_key=scope_key,
                        current_value=new,
                    )
            except IntegrityError:
                return False
            return True

        updated = (
            DocumentCounter.objects
            .filter(
                document_type=document_type,
                scope_key=scope_key,
                current_value=previous,
            )
            .update(current_value=new, updated_at=timezone.now())
        )
        return updated == 1


class Allocator:
    """
    Hands out unique, strictly increasing numbers per (document_type, scope).

    Usage:
        allocator = Allocator()
        number = allocator.next_number("challan", "")
    """

    def __init__(self, store: CounterStore | None = None, max_retries: int | None = None):
        self.store = store or CounterStore()
        if max_retries is None:
            max_retries = getattr(settings, "NUMBERING", {}).get(
                "MAX_RETRIES", DEFAULT_MAX_RETRIES
            )
        self.max_retries = max_retries

    def next_number(self, document_type: str, scope_key: str = "", *, start: int = 1) -> int:
        """
        Read, add one, compare-and-swap; retry on conflict.
        Raises AllocationContention once the retry budget is spent.
        """
        for attempt in range(self.max_retries + 1):
            current = self.store.read(document_type, scope_key)
            base = start - 1 if current is None else current
            candidate = base + 1

            if self.store.commit(document_type, scope_key, current, candidate):
                return candidate

            logger.debug(
                "Counter conflict for %s [%s] at %s (attempt %d)",
                document_type,
                scope_key,
                current,
                attempt + 1,
            )

        logger.warning(
            "Giving up allocating %s [%s] after %d retries",
            document_type,
            scope_key,
            self.max_retries,
        )
        raise AllocationContention(
            f"Could not allocate a {document_type} number, please retry.",
            document_type=document_type,
            scope_key=scope_key,
        )

    def ensure_at_least(self, document_type: str, scope_key: str, value: int) -> int:
        """
        Raise the counter to `value` unless it is already there or beyond.
        Used after importing documents that already carry numbers.
        """
        for _ in range(self.max_retries + 1):
            current = self.store.read(document_type, scope_key)
            if current is not None and current >= value:
                return current
            if self.store.commit(document_type, scope_key, current, value):
                return value

        raise AllocationContention(
            f"Could not move the {document_type} counter to {value}, please retry.",
            document_type=document_type,
            scope_key=scope_key,
        )


def resolve_scope(document_type: str, on_date: datetime.date | None = None) -> str:
    return NumberingScheme.get_for(document_type).scope_for(on_date)


def next_number(
    document_type: str,
    *,
    on_date: datetime.date | None = None,
    allocator: Allocator | None = None,
) -> Allocation:
    """
    Allocate the next number for a document type.

    The scope comes from the type's NumberingScheme and the document date:
        allocation = next_number("bilty", on_date=bilty_date)
        bilty.number, bilty.scope_key = allocation.number, allocation.scope_key
    """
    scheme = NumberingScheme.get_for(document_type)
    scope_key = scheme.scope_for(on_date)
    number = (allocator or Allocator()).next_number(
        document_type,
        scope_key,
        start=scheme.start,
    )
    return Allocation(document_type=document_type, scope_key=scope_key, number=number)
