from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AppSettings",
            fields=[
                ("id", models.PositiveSmallIntegerField(default=1, editable=False, primary_key=True, serialize=False)),
                (
                    "booking_password",
                    models.CharField(
                        blank=True,
                        help_text="Shared password required to submit bookings. Leave empty to disable the gate.",
                        max_length=128,
                        null=True,
                    ),
                ),
                (
                    "turnaround_buffer",
                    models.IntegerField(
                        blank=True,
                        help_text="Days an item stays unavailable after a reservation ends. Empty means the default.",
                        null=True,
                    ),
                ),
                ("company_name", models.CharField(blank=True, max_length=255)),
                ("contact_email", models.EmailField(blank=True, max_length=254)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Application settings",
                "verbose_name_plural": "Application settings",
            },
        ),
    ]
