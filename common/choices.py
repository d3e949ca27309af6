"""Shared enumerations and choices used across apps."""

from django.db import models


class TransactionType(models.TextChoices):
    """Ledger transaction types. Direction is carried by the type, never by sign."""

    RECEIPT = "RECEIPT", "Receipt"
    ISSUE = "ISSUE", "Issue"
    TRANSFER_OUT = "TRANSFER_OUT", "Transfer out"
    TRANSFER_IN = "TRANSFER_IN", "Transfer in"
    ADJUSTMENT = "ADJUSTMENT", "Adjustment"


class AdjustmentDirection(models.TextChoices):
    INCREASE = "INCREASE", "Increase"
    DECREASE = "DECREASE", "Decrease"


class AdjustmentReason(models.TextChoices):
    PHYSICAL_COUNT = "PHYSICAL_COUNT", "Physical count"
    DAMAGE = "DAMAGE", "Damage"
    EXPIRY = "EXPIRY", "Expiry"
    THEFT = "THEFT", "Theft"
    CORRECTION = "CORRECTION", "Correction"
    OTHER = "OTHER", "Other"


class ReferenceType(models.TextChoices):
    """External documents a generic transaction may cite."""

    PURCHASE = "PURCHASE", "Purchase"
    PRODUCTION = "PRODUCTION", "Production"
    SALES = "SALES", "Sales"
    TRANSFER = "TRANSFER", "Transfer"
    RETURN = "RETURN", "Return"
    ADJUSTMENT = "ADJUSTMENT", "Adjustment"
    RESERVATION = "RESERVATION", "Reservation"


class ReservationStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    RELEASED = "RELEASED", "Released"
    CONSUMED = "CONSUMED", "Consumed"
    EXPIRED = "EXPIRED", "Expired"


class TransferStatus(models.TextChoices):
    """Lifecycle statuses for inter-warehouse transfers."""

    PENDING = "PENDING", "Pending"
    IN_TRANSIT = "IN_TRANSIT", "In transit"
    COMPLETED = "COMPLETED", "Completed"
    FAILED = "FAILED", "Failed"
    CANCELLED = "CANCELLED", "Cancelled"


class WarehouseType(models.TextChoices):
    MAIN = "MAIN", "Main"
    DISTRIBUTION = "DISTRIBUTION", "Distribution"
    PRODUCTION = "PRODUCTION", "Production"
    RETAIL = "RETAIL", "Retail"
    TRANSIT = "TRANSIT", "Transit"
    QUARANTINE = "QUARANTINE", "Quarantine"
