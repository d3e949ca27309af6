import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sku", models.CharField(max_length=100, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("variant", models.CharField(blank=True, max_length=100)),
                ("description", models.TextField(blank=True)),
                ("unit_of_measure", models.CharField(default="PIECES", max_length=20)),
                ("barcode", models.CharField(blank=True, max_length=100)),
                ("reorder_level", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
            ],
            options={
                "ordering": ["sku"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("reorder_level__gte", 0), ("reorder_level__isnull", True), _connector="OR"),
                        name="product_reorder_level_non_negative",
                    )
                ],
            },
        ),
    ]
