"""
Core models for the Customs Transit Ledger
"""
from .shipment import (
    Shipment,
    ShipmentStatus,
    CommodityType,
    CustomsRegime,
    Expense,
    ExpenseType,
    ExpenseCategory,
    Document,
    DocumentType,
    DocumentStatus,
    DeliveryInfo,
)

__all__ = [
    "Shipment",
    "ShipmentStatus",
    "CommodityType",
    "CustomsRegime",
    "Expense",
    "ExpenseType",
    "ExpenseCategory",
    "Document",
    "DocumentType",
    "DocumentStatus",
    "DeliveryInfo",
]
