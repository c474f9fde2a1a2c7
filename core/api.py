# core/api.py
"""
Helpers shared by the JSON endpoints.

Every endpoint is wrapped with ``json_api``: it checks the method and the
session, turns a returned dict/list into a JsonResponse and maps service
errors to a body of the form

    {"reason": "validation_failed", "message": "...", "errors": {...}}
"""
from __future__ import annotations

import datetime
import json
import logging
from functools import wraps

from django.core.exceptions import BadRequest, ObjectDoesNotExist, ValidationError
from django.http import Http404, HttpResponse, JsonResponse
from django.utils.dateparse import parse_date, parse_datetime

from core.exceptions import ServiceError

logger = logging.getLogger(__name__)


def error_response(reason: str, message: str, status: int, errors=None) -> JsonResponse:
    payload = {"reason": reason, "message": str(message)}
    if errors:
        payload["errors"] = errors
    return JsonResponse(payload, status=status)


def validation_errors(exc: ValidationError) -> dict:
    if hasattr(exc, "error_dict"):
        return {field: [str(m) for m in msgs] for field, msgs in exc.message_dict.items()}
    return {"__all__": [str(m) for m in exc.messages]}


def json_api(methods=("GET",), login_required: bool = True):
    """
    Decorator for function-based JSON views.

        @json_api(methods=("GET", "POST"))
        def bilty_collection(request):
            ...
            return {"results": [...]}
    """
    allowed = tuple(m.upper() for m in methods)

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped_view(request, *args, **kwargs):
            if request.method not in allowed:
                response = error_response(
                    "method_not_allowed",
                    f"Method {request.method} not allowed.",
                    status=405,
                )
                response["Allow"] = ", ".join(allowed)
                return response

            if login_required and not request.user.is_authenticated:
                return error_response("unauthorized", "Authentication required.", status=401)

            try:
                result = view_func(request, *args, **kwargs)
            except ValidationError as exc:
                return error_response(
                    "validation_failed",
                    "; ".join(str(m) for m in exc.messages) or "Invalid data.",
                    status=400,
                    errors=validation_errors(exc),
                )
            except ServiceError as exc:
                if exc.status_code >= 500:
                    logger.error("%s in %s: %s", exc.reason, view_func.__name__, exc.message)
                return error_response(exc.reason, exc.message, status=exc.status_code)
            except (ObjectDoesNotExist, Http404) as exc:
                return error_response("not_found", str(exc) or "Not found.", status=404)
            except BadRequest as exc:
                return error_response("bad_request", str(exc), status=400)

            if isinstance(result, HttpResponse):
                return result
            if isinstance(result, tuple):
                data, status = result
                return JsonResponse(data, status=status, safe=False)
            return JsonResponse(result, safe=False)

        return _wrapped_view

    return decorator


def parse_json_body(request) -> dict:
    """
    Decode the request body as a JSON object.
    Raises BadRequest (-> 400 bad_request) for anything else.
    """
    try:
        data = json.loads(request.body or b"{}")
    except (TypeError, ValueError, UnicodeDecodeError):
        raise BadRequest("Request body must be valid JSON.")
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object.")
    return data


def parse_date_param(value: str | None) -> datetime.date | None:
    """
    Accept 'YYYY-MM-DD' or a full ISO timestamp; anything else is None.
    """
    if not value:
        return None
    value = value.strip()
    try:
        parsed = parse_date(value)
    except ValueError:
        return None
    if parsed is not None:
        return parsed
    try:
        dt = parse_datetime(value)
    except ValueError:
        return None
    return dt.date() if dt else None
