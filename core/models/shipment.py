"""
Shipment models for the Customs Transit Ledger

Records are immutable: every mutation builds a replacement record with
``model_copy(update=...)`` and stores it under the same id.
"""
from datetime import date, datetime
from typing import Optional, Tuple
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class ShipmentStatus(str, Enum):
    """Customs workflow steps, in lifecycle order"""
    OPENED = "Ouverture Dossier"
    PRE_CLEARANCE = "Pré-Dédouanement (DDI & BSC)"
    CUSTOMS_LIQUIDATION = "Liquidation Douane"
    LIQUIDATION_PAID = "Liquidation Payée"
    BAE_GRANTED = "BAE Obtenu"
    PORT_EXIT = "Sortie Port"
    DELIVERED = "Livré / Archivé"


class CommodityType(str, Enum):
    """Goods categories handled by the agency"""
    VEHICLE = "Véhicule"
    CONTAINER = "Conteneur"
    FOOD = "Denrées Alimentaires"
    ELECTRONICS = "Électroménager"
    BULK = "Vrac"
    GENERAL = "Divers"


class CustomsRegime(str, Enum):
    """Customs regime of the declaration"""
    IM4 = "IM4"
    IT = "IT"
    AT = "AT"
    EXPORT = "Export"


class ExpenseType(str, Enum):
    PROVISION = "PROVISION"        # advance received from the client
    DISBURSEMENT = "DISBURSEMENT"  # paid out on the client's behalf
    FEE = "FEE"                    # agency fee


class ExpenseCategory(str, Enum):
    CUSTOMS = "Douane"
    PORT = "Port"
    LOGISTICS = "Logistique"
    AGENCY = "Agence"
    OTHER = "Autre"


class DocumentType(str, Enum):
    BL = "BL"
    INVOICE = "Facture"
    PACKING_LIST = "Packing List"
    CERTIFICATE = "Certificat"
    DDI = "DDI"
    BSC = "BSC"
    RECEIPT = "Quittance"
    BAE = "BAE"
    BAD = "BAD"
    TRUCK_PHOTO = "Photo Camion"
    OTHER = "Autre"


class DocumentStatus(str, Enum):
    PENDING = "Pending"
    VERIFIED = "Verified"
    REJECTED = "Rejected"


class Expense(BaseModel):
    """One financial line item of a shipment, amounts in whole GNF"""
    model_config = ConfigDict(frozen=True)

    id: str
    description: str
    amount: int = Field(..., gt=0, strict=True)
    type: ExpenseType
    category: ExpenseCategory
    # PROVISION: received from the client. DISBURSEMENT: paid to the third party.
    paid: bool = False
    date: datetime


class Document(BaseModel):
    """An uploaded or scanned artifact attached to a shipment"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: DocumentType
    status: DocumentStatus = DocumentStatus.PENDING
    upload_date: datetime
    url: Optional[str] = None


class DeliveryInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    driver_name: str
    truck_plate: str
    recipient_name: str = ""
    delivery_date: datetime


class Shipment(BaseModel):
    """
    One customs case, from file opening to delivery
    """
    model_config = ConfigDict(frozen=True)

    id: str
    tracking_number: str
    client_name: str
    commodity_type: CommodityType
    description: str
    origin: str
    destination: str
    eta: date
    bl_number: str
    shipping_line: str
    container_number: Optional[str] = None
    customs_regime: CustomsRegime

    status: ShipmentStatus = ShipmentStatus.OPENED
    free_days: int = 7
    arrival_date: Optional[date] = None

    expenses: Tuple[Expense, ...] = ()
    documents: Tuple[Document, ...] = ()
    alerts: Tuple[str, ...] = ()

    declaration_number: Optional[str] = None
    declared_amount: Optional[int] = None
    delivery_info: Optional[DeliveryInfo] = None

    created_at: datetime

    @property
    def is_blocked(self) -> bool:
        """A shipment with any open alert is blocked"""
        return len(self.alerts) > 0

    @property
    def is_delivered(self) -> bool:
        return self.status == ShipmentStatus.DELIVERED

    def has_document(self, doc_type: DocumentType) -> bool:
        return any(d.type == doc_type for d in self.documents)

    def expenses_by_date(self) -> Tuple[Expense, ...]:
        return tuple(sorted(self.expenses, key=lambda e: e.date))
