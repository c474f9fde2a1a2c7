# transport/handlers.py
import logging

from core.domain.dispatcher import register_handler
from transport.domain import DocumentCreated, DocumentDeleted

logger = logging.getLogger(__name__)


@register_handler(DocumentCreated)
def log_document_created(event: DocumentCreated) -> None:
    logger.info(
        "DocumentCreated event: type=%s, id=%s, number=%s, scope=%r",
        event.document_type,
        event.document_id,
        event.number,
        event.scope_key,
    )


@register_handler(DocumentDeleted)
def log_document_deleted(event: DocumentDeleted) -> None:
    logger.info(
        "DocumentDeleted event: type=%s, id=%s, number=%s (not reused)",
        event.document_type,
        event.document_id,
        event.number,
    )
