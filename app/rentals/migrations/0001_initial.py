import uuid
from decimal import Decimal

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StorageUnit",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "unit_number",
                    models.CharField(
                        help_text="Human-readable unit label (e.g. 'A-12')",
                        max_length=20,
                        unique=True,
                    ),
                ),
                (
                    "size_m2",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Unit size in square metres",
                        max_digits=6,
                    ),
                ),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Base monthly price in EUR",
                        max_digits=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("occupied", "Occupied"),
                            ("maintenance", "Maintenance"),
                        ],
                        db_index=True,
                        default="available",
                        help_text="Availability; becomes occupied only when a rental is created",
                        max_length=20,
                    ),
                ),
            ],
            options={
                "verbose_name": "Storage Unit",
                "verbose_name_plural": "Storage Units",
                "ordering": ["unit_number"],
            },
        ),
        migrations.CreateModel(
            name="Rental",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("start_date", models.DateField(help_text="First day of access")),
                ("end_date", models.DateField(help_text="Last paid day of access")),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Monthly unit price charged (EUR)",
                        max_digits=10,
                    ),
                ),
                (
                    "insurance_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Monthly insurance add-on charged (EUR)",
                        max_digits=10,
                    ),
                ),
                (
                    "months_paid",
                    models.PositiveIntegerField(
                        default=1, help_text="Number of months paid so far"
                    ),
                ),
                (
                    "next_payment_date",
                    models.DateField(
                        blank=True,
                        help_text="Next expected charge; NULL for single payments and cancelled subscriptions",
                        null=True,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("active", "Active"),
                            ("expired", "Expired"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="active",
                        help_text="Access status (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "payment_type",
                    models.CharField(
                        choices=[
                            ("single", "Single Payment"),
                            ("subscription", "Subscription"),
                        ],
                        help_text="Commercial flow chosen at checkout",
                        max_length=20,
                    ),
                ),
                (
                    "subscription_status",
                    django_fsm.FSMField(
                        blank=True,
                        choices=[
                            ("active", "Active"),
                            ("past_due", "Past Due"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default=None,
                        help_text="Subscription billing status (managed by FSM); NULL for single payments",
                        max_length=50,
                        null=True,
                    ),
                ),
                (
                    "stripe_subscription_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe Subscription ID (sub_xxx)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "checkout_session_id",
                    models.CharField(
                        help_text="Stripe Checkout Session ID (cs_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        blank=True,
                        help_text="PaymentIntent of the first charge (pi_xxx)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "access_code",
                    models.CharField(help_text="4-digit unit access code", max_length=4),
                ),
                (
                    "occupancy_conflict",
                    models.BooleanField(
                        default=False,
                        help_text="Unit was not available when this rental was reconciled",
                    ),
                ),
                (
                    "unit",
                    models.ForeignKey(
                        help_text="Rented storage unit",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rentals",
                        to="rentals.storageunit",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Renter",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rentals",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Rental",
                "verbose_name_plural": "Rentals",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "status"], name="rentals_ren_user_id_6c1f0e_idx"),
                    models.Index(fields=["unit", "status"], name="rentals_ren_unit_id_2b9d4a_idx"),
                    models.Index(
                        fields=["stripe_subscription_id", "payment_type"],
                        name="rentals_ren_stripe__8e3a71_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("payment_type", "subscription"),
                                ("stripe_subscription_id__isnull", False),
                                ("subscription_status__isnull", False),
                            ),
                            models.Q(
                                ("payment_type", "single"),
                                ("stripe_subscription_id__isnull", True),
                                ("subscription_status__isnull", True),
                            ),
                            _connector="OR",
                        ),
                        name="rental_subscription_fields_match_payment_type",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gte", models.F("start_date"))),
                        name="rental_end_not_before_start",
                    ),
                ],
            },
        ),
    ]
