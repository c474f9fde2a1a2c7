# transport/domain.py
from dataclasses import dataclass

from core.domain.events import DomainEvent


@dataclass(frozen=True)
class DocumentCreated(DomainEvent):
    """
    Domain event: a bilty or challan was saved with a freshly allocated number.
    """
    document_type: str
    document_id: int
    number: int
    scope_key: str = ""


@dataclass(frozen=True)
class DocumentDeleted(DomainEvent):
    """
    Domain event: a bilty or challan was deleted. Its number is not reused.
    """
    document_type: str
    document_id: int
    number: int
    scope_key: str = ""
