# core/services/audit.py

from __future__ import annotations

from typing import Any, Mapping, Optional

from django.contrib.contenttypes.models import ContentType

from core.models import AuditLog


def log_event(
    *,
    action: str | AuditLog.Action,
    message: str = "",
    actor: Any = None,
    target: Optional[Any] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> AuditLog:
    """
    Create a single audit log entry.

    Parameters
    ----------
    action:
        One of AuditLog.Action (CREATE, UPDATE, DELETE, IMPORT, OTHER).

    message:
        Human-readable description of what happened.

    actor:
        The user who performed the action. Stored only when authenticated.

    target:
        Optional model instance the event relates to (Bilty, Challan, Party).
        Deleted instances can still be logged: pass `extra` with their number,
        the primary key is read before the delete clears it.

    extra:
        Optional mapping of structured data, stored as JSON.
    """
    action_value = action.value if isinstance(action, AuditLog.Action) else str(action)

    valid_actions = set(AuditLog.Action.values)
    if action_value not in valid_actions:
        raise ValueError(
            f"Invalid audit action '{action_value}'. "
            f"Allowed values: {sorted(valid_actions)}"
        )

    data: dict[str, Any] = {
        "action": action_value,
        "message": str(message or ""),
        "extra": dict(extra) if extra is not None else {},
    }

    if actor is not None and getattr(actor, "is_authenticated", False):
        data["actor"] = actor

    if target is not None:
        ct = ContentType.objects.get_for_model(target, for_concrete_model=True)
        obj_id = getattr(target, "pk", None)
        data["target_content_type"] = ct
        if obj_id is not None:
            data["target_object_id"] = str(obj_id)

    return AuditLog.objects.create(**data)
