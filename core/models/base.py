from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class TimeStampedModel(models.Model):
    """
    Adds created_at / updated_at fields.
    created_at is assigned by the server and never edited.
    """
    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        verbose_name=_("Created at"),
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name=_("Updated at"),
    )

    class Meta:
        abstract = True


class UserStampedModel(models.Model):
    """
    Adds created_by / updated_by fields.
    These are optional and filled by services when an authenticated actor is known.
    """
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="%(app_label)s_%(class)s_created",
        verbose_name=_("Created by"),
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="%(app_label)s_%(class)s_updated",
        verbose_name=_("Updated by"),
    )

    class Meta:
        abstract = True


class BaseModel(TimeStampedModel, UserStampedModel):
    """
    Base model for carrier records:

    - created_at / updated_at
    - created_by / updated_by

    The integer `id` assigned by the database is the record's identity.
    """

    class Meta:
        abstract = True
