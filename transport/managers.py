# transport/managers.py
import datetime

from django.db import models
from django.db.models import Q


# ===================================================================
# Bilty
# ===================================================================

class BiltyQuerySet(models.QuerySet):

    # -------- status --------
    def with_status(self, status: str):
        return self.filter(status=status) if status else self

    def pending(self):
        return self.filter(status=self.model.Status.PENDING)

    def delivered(self):
        return self.filter(status=self.model.Status.DELIVERED)

    # -------- dates --------
    def on_date(self, day: datetime.date):
        return self.filter(bilty_date=day)

    def dated_between(self, date_from=None, date_to=None):
        """
        Inclusive on both ends; either bound may be None.
        """
        qs = self
        if date_from:
            qs = qs.filter(bilty_date__gte=date_from)
        if date_to:
            qs = qs.filter(bilty_date__lte=date_to)
        return qs

    def since(self, day: datetime.date):
        return self.filter(bilty_date__gte=day)

    # -------- search --------
    def search(self, term: str):
        """
        Matches the bilty number (digits only) or consignor, consignee,
        origin and destination names.
        """
        term = (term or "").strip()
        if not term:
            return self

        cond = (
            Q(consignor_name__icontains=term)
            | Q(consignee_name__icontains=term)
            | Q(from_city__icontains=term)
            | Q(to_city__icontains=term)
        )
        if term.isdigit():
            cond |= Q(number__contains=term)
        return self.filter(cond)

    def with_number(self, number: int):
        return self.filter(number=number)

    def newest_first(self):
        return self.order_by("-created_at", "-id")


class BiltyManager(models.Manager):

    def get_queryset(self):
        return BiltyQuerySet(self.model, using=self._db)

    def with_status(self, status: str):
        return self.get_queryset().with_status(status)

    def dated_between(self, date_from=None, date_to=None):
        return self.get_queryset().dated_between(date_from, date_to)

    def search(self, term: str):
        return self.get_queryset().search(term)

    def with_number(self, number: int):
        return self.get_queryset().with_number(number)

    def newest_first(self):
        return self.get_queryset().newest_first()

    def recent(self, limit: int = 5):
        return self.newest_first()[:limit]


# ===================================================================
# Challan
# ===================================================================

class ChallanQuerySet(models.QuerySet):

    def dated_between(self, date_from=None, date_to=None):
        qs = self
        if date_from:
            qs = qs.filter(date__gte=date_from)
        if date_to:
            qs = qs.filter(date__lte=date_to)
        return qs

    def for_truck(self, truck_no: str):
        return self.filter(truck_no__iexact=(truck_no or "").strip())

    def search(self, term: str):
        term = (term or "").strip()
        if not term:
            return self
        cond = (
            Q(truck_no__icontains=term)
            | Q(truck_owner_name__icontains=term)
            | Q(transport_name__icontains=term)
            | Q(from_city__icontains=term)
            | Q(to_city__icontains=term)
        )
        if term.isdigit():
            cond |= Q(number__contains=term)
        return self.filter(cond)

    def newest_first(self):
        return self.order_by("-created_at", "-id")


class ChallanManager(models.Manager):

    def get_queryset(self):
        return ChallanQuerySet(self.model, using=self._db)

    def search(self, term: str):
        return self.get_queryset().search(term)

    def newest_first(self):
        return self.get_queryset().newest_first()
