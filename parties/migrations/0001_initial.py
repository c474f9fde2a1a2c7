import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import parties.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Party",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, editable=False, verbose_name="Created at"),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                (
                    "gstin",
                    models.CharField(
                        db_index=True,
                        help_text="15 characters, e.g. 27AAPFU0939F1ZV.",
                        max_length=15,
                        validators=[parties.validators.validate_gstin],
                        verbose_name="GSTIN",
                    ),
                ),
                (
                    "party_type",
                    models.CharField(
                        choices=[
                            ("consignor", "Consignor"),
                            ("consignee", "Consignee"),
                            ("both", "Consignor & consignee"),
                            ("other", "Other"),
                        ],
                        default="both",
                        max_length=20,
                        verbose_name="Type",
                    ),
                ),
                ("address", models.TextField(blank=True, verbose_name="Address")),
                ("contact_person", models.CharField(blank=True, max_length=255, verbose_name="Contact person")),
                ("phone", models.CharField(blank=True, max_length=50, verbose_name="Phone")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="Email")),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="parties_party_created",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Created by",
                    ),
                ),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="parties_party_updated",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Updated by",
                    ),
                ),
            ],
            options={
                "verbose_name": "Party",
                "verbose_name_plural": "Parties",
                "ordering": ("name", "id"),
            },
        ),
    ]
