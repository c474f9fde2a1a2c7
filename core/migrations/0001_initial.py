import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("contenttypes", "0002_remove_content_type_name"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="NumberingScheme",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "document_type",
                    models.CharField(
                        choices=[("bilty", "Bilty (consignment note)"), ("challan", "Challan (truck manifest)")],
                        max_length=20,
                        unique=True,
                        verbose_name="Document type",
                    ),
                ),
                (
                    "reset",
                    models.CharField(
                        choices=[
                            ("never", "Never (one running sequence)"),
                            ("year", "Every calendar year"),
                            ("fiscal_year", "Every fiscal year (April - March)"),
                        ],
                        default="never",
                        max_length=20,
                        verbose_name="Reset policy",
                    ),
                ),
                ("start", models.PositiveIntegerField(default=1, verbose_name="First number of a sequence")),
                (
                    "prefix",
                    models.CharField(
                        blank=True,
                        help_text="Optional, e.g. 'GR' or 'CH'. Only used on printed documents.",
                        max_length=20,
                        verbose_name="Printed prefix",
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
            ],
            options={
                "verbose_name": "Numbering scheme",
                "verbose_name_plural": "Numbering schemes",
            },
        ),
        migrations.CreateModel(
            name="DocumentCounter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "document_type",
                    models.CharField(
                        choices=[("bilty", "Bilty (consignment note)"), ("challan", "Challan (truck manifest)")],
                        max_length=20,
                        verbose_name="Document type",
                    ),
                ),
                ("scope_key", models.CharField(blank=True, default="", max_length=16, verbose_name="Scope")),
                ("current_value", models.PositiveBigIntegerField(default=0, verbose_name="Last issued number")),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Document counter",
                "verbose_name_plural": "Document counters",
            },
        ),
        migrations.AddConstraint(
            model_name="documentcounter",
            constraint=models.UniqueConstraint(
                fields=("document_type", "scope_key"),
                name="uniq_counter_per_type_scope",
            ),
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, editable=False, verbose_name="Created at"),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("create", "Create"),
                            ("update", "Update"),
                            ("delete", "Delete"),
                            ("import", "Import"),
                            ("other", "Other"),
                        ],
                        db_index=True,
                        max_length=32,
                        verbose_name="Action",
                    ),
                ),
                ("target_object_id", models.CharField(blank=True, max_length=64, null=True, verbose_name="Object id")),
                ("message", models.TextField(blank=True, verbose_name="Message")),
                ("extra", models.JSONField(blank=True, default=dict, verbose_name="Extra data")),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_logs",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="User",
                    ),
                ),
                (
                    "target_content_type",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_logs",
                        to="contenttypes.contenttype",
                        verbose_name="Object type",
                    ),
                ),
            ],
            options={
                "verbose_name": "Audit log",
                "verbose_name_plural": "Audit logs",
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["actor", "created_at"], name="core_auditl_actor_i_5f1c2e_idx"),
                    models.Index(
                        fields=["target_content_type", "target_object_id", "created_at"],
                        name="core_auditl_target__8d0b3a_idx",
                    ),
                    models.Index(fields=["action", "created_at"], name="core_auditl_action_2c9e71_idx"),
                ],
            },
        ),
    ]
