"""
Pydantic schemas for the Customs Transit Ledger
"""
from .shipment import (
    ShipmentCreate,
    ExpenseCreate,
    DocumentCreate,
    ShipmentDetailsUpdate,
    DeclarationRequest,
    DeliveryRequest,
    PaymentFailureReason,
    PaymentResult,
    BalanceSummary,
    DocumentUploadResult,
)

__all__ = [
    "ShipmentCreate",
    "ExpenseCreate",
    "DocumentCreate",
    "ShipmentDetailsUpdate",
    "DeclarationRequest",
    "DeliveryRequest",
    "PaymentFailureReason",
    "PaymentResult",
    "BalanceSummary",
    "DocumentUploadResult",
]
