# transport/stats.py
import datetime

from django.utils import timezone

from .models import Bilty

RECENT_LIMIT = 5


def dashboard_stats(today: datetime.date | None = None) -> dict:
    """
    Bilty counts by bilty date: today, and the last 7, 30 and 90 days
    (today included), plus the most recently created bilties.
    """
    today = today or timezone.localdate()
    qs = Bilty.objects.all()

    def since(days: int) -> int:
        return qs.since(today - datetime.timedelta(days=days - 1)).filter(bilty_date__lte=today).count()

    return {
        "today": qs.on_date(today).count(),
        "last_7_days": since(7),
        "last_30_days": since(30),
        "last_90_days": since(90),
        "total": qs.count(),
        "recent": list(Bilty.objects.recent(RECENT_LIMIT)),
    }
