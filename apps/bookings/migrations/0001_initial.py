import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("customers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="EmergencyBackup",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("fingerprint", models.CharField(db_index=True, max_length=255)),
                ("payload", models.JSONField(help_text="Original request, password redacted.")),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("converted", "Converted"), ("failed", "Failed")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("group_id", models.UUIDField(blank=True, null=True)),
                ("last_error", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("converted_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Emergency backup",
                "verbose_name_plural": "Emergency backups",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="SystemErrorRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("error_type", models.CharField(max_length=64)),
                ("payload", models.JSONField(default=dict)),
                ("resolved", models.BooleanField(default=False)),
                ("retry_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "System error",
                "verbose_name_plural": "System errors",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Reservation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(help_text="Inclusive.")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("active", "Active"),
                            ("returned", "Returned"),
                            ("cancelled", "Cancelled"),
                            ("archived", "Archived"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "group_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="Shared by reservations submitted together.",
                        null=True,
                    ),
                ),
                (
                    "fingerprint",
                    models.CharField(
                        blank=True,
                        help_text="Client request id plus item id; makes resubmission idempotent.",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("country", models.CharField(blank=True, max_length=100)),
                ("city_region", models.CharField(blank=True, max_length=100)),
                ("address_line1", models.CharField(blank=True, max_length=255)),
                ("address_line2", models.CharField(blank=True, max_length=255)),
                ("postcode", models.CharField(blank=True, max_length=20)),
                ("dispatch_notes", models.TextField(blank=True, null=True)),
                ("dispatch_image_paths", models.JSONField(blank=True, default=list)),
                ("return_notes", models.TextField(blank=True, null=True)),
                ("return_image_paths", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="customers.profile",
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="catalog.item",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reservation",
                "verbose_name_plural": "Reservations",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["item", "status", "start_date", "end_date"], name="reservation_item_window_idx"),
                    models.Index(fields=["status"], name="reservation_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gte=models.F("start_date")),
                        name="reservation_valid_dates",
                    ),
                ],
            },
        ),
    ]
