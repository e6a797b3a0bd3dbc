"""
Pydantic schemas for ledger inputs and results
"""
import re
from datetime import date, datetime
from typing import Any, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from config.settings import settings
from core.models import (
    CommodityType,
    CustomsRegime,
    Document,
    DocumentStatus,
    DocumentType,
    ExpenseCategory,
    ExpenseType,
    Shipment,
)

BL_PATTERN = re.compile(r"[A-Z0-9]+")
BL_MIN_LENGTH = 5


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            try:
                return datetime.fromisoformat(text).date()
            except ValueError:
                pass
    raise ValueError("Date ETA invalide")


# Minimum lengths and the message shown next to the form input
MIN_LENGTH_RULES = {
    "client_name": (3, "Le nom du client doit contenir au moins 3 caractères"),
    "description": (5, "La description doit être détaillée (min 5 car.)"),
    "origin": (2, "L'origine est requise"),
    "shipping_line": (2, "Compagnie maritime requise"),
}
EXPENSE_DESCRIPTION_MIN_LENGTH = 3


def _check_min_length(field: str, value: str, minimum: int, message: str) -> str:
    if len(value) < minimum:
        raise PydanticCustomError(field, message)
    return value


class ShipmentCreate(BaseModel):
    """Schema for opening a new shipment file"""
    client_name: str = Field(..., max_length=100, description="Importer name")
    commodity_type: CommodityType = Field(..., description="Goods category")
    description: str = Field(..., description="Detailed goods description")
    origin: str = Field(..., description="Port or country of origin")
    destination: str = Field(default_factory=lambda: settings.DEFAULT_DESTINATION)
    eta: date = Field(..., description="Expected arrival date")
    bl_number: str = Field(..., description="Bill of lading number")
    shipping_line: str = Field(..., description="Carrier, e.g. Maersk")
    container_number: Optional[str] = Field(None, description="Absent for RORO or bulk")
    customs_regime: CustomsRegime = Field(..., description="IM4, IT, AT or Export")

    @field_validator("client_name", "description", "origin", "shipping_line")
    @classmethod
    def check_min_length(cls, v: str, info: ValidationInfo) -> str:
        minimum, message = MIN_LENGTH_RULES[info.field_name]
        return _check_min_length(info.field_name, v, minimum, message)

    @field_validator("destination", mode="before")
    @classmethod
    def default_destination(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return settings.DEFAULT_DESTINATION
        return v

    @field_validator("eta", mode="before")
    @classmethod
    def parse_eta(cls, v):
        return _parse_date(v)

    @field_validator("bl_number")
    @classmethod
    def check_bl_number(cls, v: str) -> str:
        problems = []
        if len(v) < BL_MIN_LENGTH:
            problems.append("Numéro BL invalide")
        if not BL_PATTERN.fullmatch(v):
            problems.append("Le BL ne doit contenir que des majuscules et chiffres")
        if problems:
            raise PydanticCustomError("bl_number", "; ".join(problems), {"problems": problems})
        return v

    @field_validator("container_number", mode="before")
    @classmethod
    def blank_container(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ExpenseCreate(BaseModel):
    """Schema for recording a financial transaction"""
    description: str
    # strict: booleans and numeric strings are not amounts
    amount: int = Field(..., strict=True, description="Amount in whole GNF")
    category: ExpenseCategory
    type: ExpenseType
    paid: bool = False
    date: Optional[datetime] = None

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str) -> str:
        return _check_min_length("description", v, EXPENSE_DESCRIPTION_MIN_LENGTH, "Description requise")

    @field_validator("amount")
    @classmethod
    def check_amount(cls, v: int) -> int:
        if v <= 0:
            raise PydanticCustomError("amount", "Le montant doit être positif")
        return v


class DocumentCreate(BaseModel):
    """Schema for attaching a document"""
    name: str = Field(..., min_length=1)
    type: DocumentType
    status: DocumentStatus = DocumentStatus.PENDING
    url: Optional[str] = None


class ShipmentDetailsUpdate(BaseModel):
    """
    Shallow update of route and transport details.

    Lifecycle-owned fields (status, expenses, documents...) are rejected.
    """
    model_config = ConfigDict(extra="forbid")

    origin: Optional[str] = None
    destination: Optional[str] = None
    eta: Optional[date] = None
    bl_number: Optional[str] = None
    container_number: Optional[str] = None
    shipping_line: Optional[str] = None


class DeclarationRequest(BaseModel):
    number: str = Field(..., min_length=1, description="Customs declaration number")
    amount: int = Field(..., gt=0, strict=True, description="Declared liquidation amount in GNF")


class DeliveryRequest(BaseModel):
    driver_name: str = Field(..., min_length=1)
    truck_plate: str = Field(..., min_length=1)
    recipient_name: str = ""

    @field_validator("driver_name", "truck_plate", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class PaymentFailureReason(str, Enum):
    NO_LIQUIDATION_PENDING = "NoLiquidationPending"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    LIQUIDATION_NOT_OPEN = "LiquidationNotOpen"


class PaymentResult(BaseModel):
    """Outcome of the liquidation payment gate"""
    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    reason: Optional[PaymentFailureReason] = None
    balance: Optional[int] = None
    required: Optional[int] = None
    expense_id: Optional[str] = None


class BalanceSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    provisions: int
    paid_disbursements: int
    balance: int


class DocumentUploadResult(BaseModel):
    """A document upload and the workflow it may have triggered"""
    model_config = ConfigDict(frozen=True)

    shipment: Shipment
    document: Document
    payment: Optional[PaymentResult] = None
