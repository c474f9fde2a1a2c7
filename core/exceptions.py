# core/exceptions.py
"""
Service-level errors that carry a machine-readable ``reason``.

Field validation keeps using ``django.core.exceptions.ValidationError``;
``core.api.json_api`` maps it to the ``validation_failed`` reason.
"""


class ServiceError(Exception):
    reason = "error"
    status_code = 500

    def __init__(self, message: str = "", **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra


class AllocationContention(ServiceError):
    """
    The counter kept changing under us and the bounded retry budget ran out.
    Transient: the caller may retry the whole request.
    """

    reason = "allocation_contention"
    status_code = 503


class PersistError(ServiceError):
    """
    Writing the document failed after a number was allocated.
    The allocated number stays consumed.
    """

    reason = "persist_failed"
    status_code = 500


class NotFoundError(ServiceError):
    reason = "not_found"
    status_code = 404
