# parties/managers.py
from django.db import models
from django.db.models import Q


class PartyQuerySet(models.QuerySet):
    """
    Ready-made filters for Party: status, role and free-text search.
    """

    def active(self):
        return self.filter(is_active=True)

    def inactive(self):
        return self.filter(is_active=False)

    def consignors(self):
        # string values to avoid importing the model here
        return self.filter(party_type__in=["consignor", "both"])

    def consignees(self):
        return self.filter(party_type__in=["consignee", "both"])

    def with_gstin(self, gstin: str):
        return self.filter(gstin__iexact=(gstin or "").strip())

    def search(self, term: str):
        """
        Case-insensitive match on name, GSTIN, contact person or phone.
        """
        term = (term or "").strip()
        if not term:
            return self
        return self.filter(
            Q(name__icontains=term)
            | Q(gstin__icontains=term)
            | Q(contact_person__icontains=term)
            | Q(phone__icontains=term)
        )


class PartyManager(models.Manager):

    def get_queryset(self):
        return PartyQuerySet(self.model, using=self._db)

    def active(self):
        return self.get_queryset().active()

    def consignors(self):
        return self.get_queryset().consignors()

    def consignees(self):
        return self.get_queryset().consignees()

    def with_gstin(self, gstin: str):
        return self.get_queryset().with_gstin(gstin)

    def search(self, term: str):
        return self.get_queryset().search(term)
