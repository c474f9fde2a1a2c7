# core/domain/events.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """
    Base class for all domain events.

    Example:
        @dataclass(frozen=True)
        class DocumentCreated(DomainEvent):
            document_type: str
            document_id: int
            number: int
    """
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)
