import decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import parties.validators


def money(verbose_name):
    return models.DecimalField(
        decimal_places=2,
        default=decimal.Decimal("0.00"),
        max_digits=14,
        verbose_name=verbose_name,
    )


def weight(verbose_name):
    return models.DecimalField(
        decimal_places=3,
        default=decimal.Decimal("0.000"),
        max_digits=12,
        verbose_name=verbose_name,
    )


def stamps(app_model):
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        (
            "created_at",
            models.DateTimeField(default=django.utils.timezone.now, editable=False, verbose_name="Created at"),
        ),
        ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
        (
            "created_by",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name=f"{app_model}_created",
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
                related_name=f"{app_model}_updated",
                to=settings.AUTH_USER_MODEL,
                verbose_name="Updated by",
            ),
        ),
        ("number", models.PositiveBigIntegerField(db_index=True, editable=False, verbose_name="Number")),
        (
            "scope_key",
            models.CharField(blank=True, default="", editable=False, max_length=16, verbose_name="Numbering scope"),
        ),
        ("truck_no", models.CharField(max_length=20, verbose_name="Truck no.")),
        ("from_city", models.CharField(max_length=100, verbose_name="From")),
        ("to_city", models.CharField(max_length=100, verbose_name="To")),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Bilty",
            fields=stamps("transport_bilty") + [
                (
                    "bilty_date",
                    models.DateField(db_index=True, default=django.utils.timezone.localdate, verbose_name="Bilty date"),
                ),
                ("consignor_name", models.CharField(max_length=255, verbose_name="Consignor")),
                (
                    "consignor_gstin",
                    models.CharField(
                        blank=True,
                        max_length=15,
                        validators=[parties.validators.validate_gstin],
                        verbose_name="Consignor GSTIN",
                    ),
                ),
                ("consignee_name", models.CharField(max_length=255, verbose_name="Consignee")),
                (
                    "consignee_gstin",
                    models.CharField(
                        blank=True,
                        max_length=15,
                        validators=[parties.validators.validate_gstin],
                        verbose_name="Consignee GSTIN",
                    ),
                ),
                ("transporter_id", models.CharField(blank=True, max_length=50, verbose_name="Transporter id")),
                ("invoice_no", models.CharField(blank=True, max_length=50, verbose_name="Invoice no.")),
                ("eway_no", models.CharField(blank=True, max_length=50, verbose_name="E-way bill no.")),
                (
                    "gross_value",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="Goods value"
                    ),
                ),
                ("special_instruction", models.TextField(blank=True, verbose_name="Special instruction")),
                ("total_packages", models.CharField(blank=True, max_length=50, verbose_name="Total packages")),
                ("paid_by", models.CharField(blank=True, max_length=50, verbose_name="Paid by")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("in_transit", "In transit"),
                            ("delivered", "Delivered"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("freight", money("Freight")),
                ("pf", money("P.F.")),
                ("lc", money("L.C.")),
                ("bc", money("B.C.")),
                ("total", money("Sub total")),
                ("cgst", money("CGST")),
                ("sgst", money("SGST")),
                ("igst", money("IGST")),
                ("advance", money("Advance")),
                ("grand_total", money("Grand total")),
            ],
            options={
                "verbose_name": "Bilty",
                "verbose_name_plural": "Bilties",
                "ordering": ("-created_at", "-id"),
            },
        ),
        migrations.CreateModel(
            name="BiltyItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "quantity",
                    models.DecimalField(
                        decimal_places=3, default=decimal.Decimal("1.000"), max_digits=12, verbose_name="Quantity"
                    ),
                ),
                ("goods_description", models.CharField(max_length=255, verbose_name="Description of goods")),
                ("hsn_code", models.CharField(blank=True, max_length=20, verbose_name="HSN code")),
                ("weight", weight("Actual weight")),
                ("charged_weight", weight("Charged weight")),
                ("rate", models.CharField(blank=True, max_length=50, verbose_name="Rate")),
                (
                    "bilty",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="transport.bilty",
                    ),
                ),
            ],
            options={
                "verbose_name": "Bilty item",
                "ordering": ("id",),
            },
        ),
        migrations.CreateModel(
            name="Challan",
            fields=stamps("transport_challan") + [
                ("date", models.DateField(db_index=True, default=django.utils.timezone.localdate, verbose_name="Date")),
                ("truck_owner_name", models.CharField(max_length=255, verbose_name="Truck owner")),
                ("license_no", models.CharField(blank=True, max_length=50, verbose_name="Driver licence no.")),
                (
                    "cash_or_due",
                    models.CharField(
                        choices=[("cash", "Cash"), ("due", "Due")],
                        default="cash",
                        max_length=10,
                        verbose_name="Cash / due",
                    ),
                ),
                ("transport_name", models.CharField(blank=True, max_length=255, verbose_name="Transport")),
                ("commission", money("Commission")),
                (
                    "payment_mode",
                    models.CharField(blank=True, default="Cash", max_length=50, verbose_name="Payment mode"),
                ),
                ("total_freight", money("Total freight")),
                ("total_commission", money("Total commission")),
            ],
            options={
                "verbose_name": "Challan",
                "verbose_name_plural": "Challans",
                "ordering": ("-created_at", "-id"),
            },
        ),
        migrations.CreateModel(
            name="ChallanItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("bilty_no", models.CharField(max_length=30, verbose_name="Bilty no.")),
                ("freight", money("Freight")),
                ("weight", weight("Weight")),
                ("rate", money("Rate")),
                ("total", money("Total")),
                (
                    "challan",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="transport.challan",
                    ),
                ),
            ],
            options={
                "verbose_name": "Challan item",
                "ordering": ("id",),
            },
        ),
        migrations.AddConstraint(
            model_name="bilty",
            constraint=models.UniqueConstraint(fields=("number", "scope_key"), name="uniq_bilty_number_per_scope"),
        ),
        migrations.AddConstraint(
            model_name="challan",
            constraint=models.UniqueConstraint(fields=("number", "scope_key"), name="uniq_challan_number_per_scope"),
        ),
    ]
