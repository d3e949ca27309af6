import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models

TRANSACTION_TYPES = [
    ("RECEIPT", "Receipt"),
    ("ISSUE", "Issue"),
    ("TRANSFER_OUT", "Transfer out"),
    ("TRANSFER_IN", "Transfer in"),
    ("ADJUSTMENT", "Adjustment"),
]
DIRECTIONS = [("INCREASE", "Increase"), ("DECREASE", "Decrease")]
RESERVATION_STATUSES = [
    ("ACTIVE", "Active"),
    ("RELEASED", "Released"),
    ("CONSUMED", "Consumed"),
    ("EXPIRED", "Expired"),
]
TRANSFER_STATUSES = [
    ("PENDING", "Pending"),
    ("IN_TRANSIT", "In transit"),
    ("COMPLETED", "Completed"),
    ("FAILED", "Failed"),
    ("CANCELLED", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("warehouses", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="StockBalance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("lot", models.CharField(blank=True, default="", max_length=100)),
                ("on_hand", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("reserved", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("version", models.PositiveBigIntegerField(default=0)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="balances", to="catalog.product"
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="balances",
                        to="warehouses.warehouse",
                    ),
                ),
            ],
            options={
                "ordering": ["product_id", "warehouse_id", "lot"],
                "indexes": [models.Index(fields=["warehouse", "product"], name="bal_wh_product_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "warehouse", "lot"), name="unique_balance_per_sku_location"
                    ),
                    models.CheckConstraint(condition=models.Q(("on_hand__gte", 0)), name="balance_on_hand_non_negative"),
                    models.CheckConstraint(
                        condition=models.Q(("reserved__gte", 0)), name="balance_reserved_non_negative"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryTransaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("number", models.CharField(max_length=50, unique=True)),
                ("sequence", models.PositiveBigIntegerField()),
                ("lot", models.CharField(blank=True, default="", max_length=100)),
                ("transaction_type", models.CharField(choices=TRANSACTION_TYPES, max_length=16)),
                (
                    "adjustment_direction",
                    models.CharField(blank=True, choices=DIRECTIONS, default="", max_length=16),
                ),
                ("quantity", models.DecimalField(decimal_places=2, max_digits=14)),
                ("unit_cost", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("total_cost", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=16)),
                ("reference_type", models.CharField(blank=True, default="", max_length=100)),
                ("reference_id", models.CharField(blank=True, default="", max_length=64)),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("balance_after", models.DecimalField(decimal_places=2, max_digits=14)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "balance",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="inventory.stockbalance",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="catalog.product"
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="warehouses.warehouse",
                    ),
                ),
                (
                    "reverses",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reversed_by",
                        to="inventory.inventorytransaction",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-sequence"],
                "indexes": [
                    models.Index(fields=["product"], name="txn_product_idx"),
                    models.Index(fields=["warehouse"], name="txn_warehouse_idx"),
                    models.Index(fields=["transaction_type"], name="txn_type_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="txn_reference_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("balance", "sequence"), name="unique_transaction_sequence_per_balance"
                    ),
                    models.CheckConstraint(condition=models.Q(("quantity__gt", 0)), name="transaction_quantity_positive"),
                    models.CheckConstraint(
                        condition=models.Q(("unit_cost__gte", 0)), name="transaction_unit_cost_non_negative"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("balance_after__gte", 0)), name="transaction_balance_after_non_negative"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockReservation",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("number", models.CharField(max_length=50, unique=True)),
                ("lot", models.CharField(blank=True, default="", max_length=100)),
                ("reserved_quantity", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "fulfilled_quantity",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14),
                ),
                ("reference_type", models.CharField(max_length=100)),
                ("reference_id", models.CharField(max_length=64)),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("expiry_date", models.DateTimeField()),
                ("status", models.CharField(choices=RESERVATION_STATUSES, default="ACTIVE", max_length=16)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                (
                    "balance",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="inventory.stockbalance",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="reservations", to="catalog.product"
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="warehouses.warehouse",
                    ),
                ),
                (
                    "consumed_by",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="consumed_reservation",
                        to="inventory.inventorytransaction",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["balance", "status"], name="rsv_balance_status_idx"),
                    models.Index(fields=["status", "expiry_date"], name="rsv_status_expiry_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="rsv_reference_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("reserved_quantity__gt", 0)), name="reservation_positive_qty"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("fulfilled_quantity__lte", models.F("reserved_quantity"))),
                        name="reservation_fulfilled_le_reserved",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockTransfer",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("number", models.CharField(max_length=50, unique=True)),
                ("lot", models.CharField(blank=True, default="", max_length=100)),
                ("quantity", models.DecimalField(decimal_places=2, max_digits=14)),
                ("unit_cost", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "status",
                    models.CharField(choices=TRANSFER_STATUSES, db_index=True, default="PENDING", max_length=16),
                ),
                ("expected_delivery_date", models.DateField(blank=True, null=True)),
                ("carrier_name", models.CharField(blank=True, default="", max_length=255)),
                ("tracking_number", models.CharField(blank=True, default="", max_length=255)),
                ("notes", models.TextField(blank=True, default="")),
                ("failure_reason", models.CharField(blank=True, default="", max_length=255)),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="transfers", to="catalog.product"
                    ),
                ),
                (
                    "from_warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="outgoing_transfers",
                        to="warehouses.warehouse",
                    ),
                ),
                (
                    "to_warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="incoming_transfers",
                        to="warehouses.warehouse",
                    ),
                ),
                (
                    "out_transaction",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfer_out_of",
                        to="inventory.inventorytransaction",
                    ),
                ),
                (
                    "in_transaction",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfer_in_of",
                        to="inventory.inventorytransaction",
                    ),
                ),
                (
                    "reversal_transaction",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfer_reversal_of",
                        to="inventory.inventorytransaction",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["from_warehouse"], name="trf_from_wh_idx"),
                    models.Index(fields=["to_warehouse"], name="trf_to_wh_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("quantity__gt", 0)), name="transfer_positive_qty"),
                    models.CheckConstraint(
                        condition=models.Q(("from_warehouse", models.F("to_warehouse")), _negated=True),
                        name="transfer_distinct_warehouses",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="IdempotencyKey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("key", models.CharField(max_length=128)),
                ("scope", models.CharField(max_length=128)),
                ("path", models.CharField(max_length=255)),
                ("method", models.CharField(max_length=16)),
                ("request_hash", models.CharField(blank=True, max_length=64, null=True)),
                ("response_code", models.IntegerField(blank=True, null=True)),
                ("response_json", models.JSONField(blank=True, null=True)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("key", "scope", "path", "method"), name="uniq_idem_scope_path_method"
                    )
                ],
            },
        ),
    ]
