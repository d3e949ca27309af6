import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Warehouse",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(max_length=50, unique=True)),
                ("name", models.CharField(max_length=255)),
                (
                    "warehouse_type",
                    models.CharField(
                        choices=[
                            ("MAIN", "Main"),
                            ("DISTRIBUTION", "Distribution"),
                            ("PRODUCTION", "Production"),
                            ("RETAIL", "Retail"),
                            ("TRANSIT", "Transit"),
                            ("QUARANTINE", "Quarantine"),
                        ],
                        default="MAIN",
                        max_length=16,
                    ),
                ),
                ("address", models.TextField(blank=True)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
            ],
            options={"ordering": ["code"]},
        ),
    ]
