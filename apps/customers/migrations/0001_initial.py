import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "email",
                    models.EmailField(
                        help_text="Stored lowercased and trimmed.",
                        max_length=254,
                        unique=True,
                        verbose_name="Email",
                    ),
                ),
                ("full_name", models.CharField(blank=True, max_length=255)),
                ("company_name", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "organization_domain",
                    models.CharField(
                        blank=True,
                        help_text="Email domain when it is not a public webmail provider.",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "role",
                    models.CharField(
                        choices=[("customer", "Customer"), ("admin", "Admin")],
                        default="customer",
                        max_length=20,
                    ),
                ),
                ("country", models.CharField(blank=True, max_length=100)),
                ("city_region", models.CharField(blank=True, max_length=100)),
                ("address_line1", models.CharField(blank=True, max_length=255)),
                ("address_line2", models.CharField(blank=True, max_length=255)),
                ("postcode", models.CharField(blank=True, max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Customer",
                "verbose_name_plural": "Customers",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["organization_domain"], name="customers_org_domain_idx")],
            },
        ),
    ]
