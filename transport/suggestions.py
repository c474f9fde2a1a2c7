# transport/suggestions.py
"""
Autocomplete for the bilty form, fed by the values typed on recent bilties.
"""
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from .models import Bilty

SCAN_LIMIT = 500
MAX_SUGGESTIONS = 10
MIN_SCORE = 30

# Query parameter -> Bilty field
SUGGESTION_FIELDS = {
    "consignor": "consignor_name",
    "consignor_gstin": "consignor_gstin",
    "consignee": "consignee_name",
    "consignee_gstin": "consignee_gstin",
    "truck": "truck_no",
    "from": "from_city",
    "to": "to_city",
}


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def match_score(term: str, candidate: str) -> float:
    """
    100 exact, 90 prefix, 80 substring, otherwise up to 70 by edit distance.
    Case-insensitive.
    """
    term, candidate = term.lower(), candidate.lower()
    if candidate == term:
        return 100
    if candidate.startswith(term):
        return 90
    if term in candidate:
        return 80
    longest = max(len(term), len(candidate))
    if not longest:
        return 0
    return (longest - levenshtein(term, candidate)) / longest * 70


def suggest(field: str, term: str = "") -> list[dict]:
    """
    Distinct values of `field` over the newest bilties, best matches first.
    Without a term, the most recently used values are returned.
    """
    if field not in SUGGESTION_FIELDS:
        raise ValidationError(
            {"field": _("Unknown field. Use one of: %(fields)s") % {"fields": ", ".join(SUGGESTION_FIELDS)}}
        )

    model_field = SUGGESTION_FIELDS[field]
    values = (
        Bilty.objects
        .newest_first()
        .values_list(model_field, flat=True)[:SCAN_LIMIT]
    )

    seen = []
    for value in values:
        value = (value or "").strip()
        if value and value not in seen:
            seen.append(value)

    term = (term or "").strip()
    if not term:
        scored = [(value, 0) for value in seen]
    else:
        scored = [(value, match_score(term, value)) for value in seen]
        scored = [pair for pair in scored if pair[1] > MIN_SCORE]
        # sorted() is stable: equal scores keep the most recent first
        scored = sorted(scored, key=lambda pair: pair[1], reverse=True)

    return [
        {"value": value, "label": value, "score": round(score, 2), "field": field}
        for value, score in scored[:MAX_SUGGESTIONS]
    ]
