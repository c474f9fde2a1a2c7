from .base import BaseModel, TimeStampedModel, UserStampedModel
from .audit import AuditLog
from .numbering import DocumentType, NumberingScheme
from .sequences import DocumentCounter

__all__ = [
    "BaseModel",
    "TimeStampedModel",
    "UserStampedModel",
    "AuditLog",
    # Document numbering
    "DocumentType",
    "NumberingScheme",
    "DocumentCounter",
]
