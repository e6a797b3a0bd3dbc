"""
Shipment service with business logic

The ledger keeps shipments in memory, keyed by id. Every mutation replaces
the stored record with an updated copy; writers are serialized by one lock.
"""
import logging
import threading
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from config.logging_config import audit
from config.settings import settings
from core.auth import Action, AuthContext, actor, require
from core.exceptions import InvalidTransition, ShipmentNotFound, ShipmentValidationError
from core.lifecycle import OPERATION_OWNED_STATES, has_reached, validate_transition
from core.models import (
    DeliveryInfo,
    Document,
    DocumentType,
    Expense,
    ExpenseCategory,
    ExpenseType,
    Shipment,
    ShipmentStatus,
)
from core.money import format_gnf
from core.schemas import (
    BalanceSummary,
    DeclarationRequest,
    DeliveryRequest,
    DocumentCreate,
    DocumentUploadResult,
    ExpenseCreate,
    PaymentFailureReason,
    PaymentResult,
    ShipmentCreate,
    ShipmentDetailsUpdate,
)
from services.tracking import TrackingNumberGenerator

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

DEMURRAGE_ALERT_PREFIX = "Surestaries"

MSG_PAYMENT_AUTHORIZED = "Paiement autorisé."
MSG_NO_LIQUIDATION = "Aucune liquidation en attente trouvée."
MSG_LIQUIDATION_NOT_OPEN = "Le dossier n'est pas encore en liquidation douane."


def compute_balance(shipment: Shipment, strict: bool = False) -> BalanceSummary:
    """
    Client balance of a shipment: provisions minus paid disbursements.

    In the default (observed) mode every provision counts, received or not.
    With ``strict`` only provisions flagged as received count.
    """
    provisions = sum(
        e.amount for e in shipment.expenses
        if e.type == ExpenseType.PROVISION and (e.paid or not strict)
    )
    paid_disbursements = sum(
        e.amount for e in shipment.expenses
        if e.type == ExpenseType.DISBURSEMENT and e.paid
    )
    return BalanceSummary(
        provisions=provisions,
        paid_disbursements=paid_disbursements,
        balance=provisions - paid_disbursements,
    )


def _validate(schema: Type[SchemaT], data: Union[SchemaT, Mapping[str, Any]]) -> SchemaT:
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise ShipmentValidationError.from_pydantic(e) from e


def _new_id() -> str:
    return uuid.uuid4().hex


class ShipmentService:
    """Service class for shipment operations"""

    def __init__(
        self,
        tracking: Optional[TrackingNumberGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        strict_provision_balance: Optional[bool] = None,
    ):
        self.tracking = tracking or TrackingNumberGenerator()
        self.clock = clock or datetime.now
        self.strict_provision_balance = (
            settings.STRICT_PROVISION_BALANCE
            if strict_provision_balance is None
            else strict_provision_balance
        )
        self._shipments: Dict[str, Shipment] = {}
        self._tracking_numbers: Set[str] = set()
        self._creation_keys: Dict[str, str] = {}
        self._payment_keys: Dict[str, PaymentResult] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_shipment(self, shipment_id: str) -> Shipment:
        """Get a shipment by ID"""
        shipment = self._shipments.get(shipment_id)
        if shipment is None:
            raise ShipmentNotFound(shipment_id)
        return shipment

    def list_shipments(self) -> List[Shipment]:
        """All shipments, newest first"""
        return sorted(self._shipments.values(), key=lambda s: s.created_at, reverse=True)

    def find_by_tracking_number(self, tracking_number: str) -> Optional[Shipment]:
        wanted = tracking_number.upper()
        return next(
            (s for s in self._shipments.values() if s.tracking_number.upper() == wanted),
            None,
        )

    def balance(self, shipment_id: str) -> BalanceSummary:
        return compute_balance(self.get_shipment(shipment_id), self.strict_provision_balance)

    def __len__(self) -> int:
        return len(self._shipments)

    # ------------------------------------------------------------------
    # Creation and plain mutations
    # ------------------------------------------------------------------

    def create_shipment(
        self,
        shipment_data: Union[ShipmentCreate, Mapping[str, Any]],
        auth: Optional[AuthContext] = None,
        idempotency_key: Optional[str] = None,
    ) -> Shipment:
        """Open a new shipment file"""
        require(auth, Action.CREATE_SHIPMENT)

        with self._lock:
            if idempotency_key and idempotency_key in self._creation_keys:
                shipment_id = self._creation_keys[idempotency_key]
                logger.info(f"Replayed shipment creation {idempotency_key} -> {shipment_id}")
                return self._shipments[shipment_id]

            try:
                data = _validate(ShipmentCreate, shipment_data)
            except ShipmentValidationError as e:
                logger.warning(f"Shipment creation rejected by validation: {sorted(e.errors)}")
                raise

            tracking_number = self.tracking.generate(data.customs_regime, self._tracking_numbers)
            shipment = Shipment(
                id=_new_id(),
                tracking_number=tracking_number,
                client_name=data.client_name,
                commodity_type=data.commodity_type,
                description=data.description,
                origin=data.origin,
                destination=data.destination,
                eta=data.eta,
                bl_number=data.bl_number.upper(),
                shipping_line=data.shipping_line,
                container_number=data.container_number.upper() if data.container_number else None,
                customs_regime=data.customs_regime,
                status=ShipmentStatus.OPENED,
                free_days=settings.DEFAULT_FREE_DAYS,
                created_at=self.clock(),
            )
            self._store(shipment)
            self._tracking_numbers.add(tracking_number)
            if idempotency_key:
                self._creation_keys[idempotency_key] = shipment.id

        logger.info(f"Created shipment {shipment.id} ({tracking_number}) for {shipment.client_name}")
        audit("Dossier Créé", actor(auth), id=shipment.id, tracking=tracking_number, bl=shipment.bl_number)
        return shipment

    def add_expense(
        self,
        shipment_id: str,
        expense_data: Union[ExpenseCreate, Mapping[str, Any]],
        auth: Optional[AuthContext] = None,
    ) -> Shipment:
        """Append a financial transaction to a shipment"""
        require(auth, Action.RECORD_EXPENSE)
        data = _validate(ExpenseCreate, expense_data)

        with self._lock:
            shipment = self.get_shipment(shipment_id)
            expense = Expense(
                id=_new_id(),
                description=data.description,
                amount=data.amount,
                type=data.type,
                category=data.category,
                paid=data.paid,
                date=data.date or self.clock(),
            )
            shipment = self._store(shipment.model_copy(update={"expenses": shipment.expenses + (expense,)}))

        audit(
            "Transaction Financière", actor(auth),
            shipment_id=shipment_id, amount=expense.amount, type=expense.type.value,
        )
        return shipment

    def add_document(
        self,
        shipment_id: str,
        document_data: Union[DocumentCreate, Mapping[str, Any]],
        auth: Optional[AuthContext] = None,
    ) -> DocumentUploadResult:
        """
        Attach a document and run the workflow it triggers.

        A receipt (Quittance) uploaded during customs liquidation runs the
        payment gate; a BAE uploaded once the liquidation is paid grants the
        release order.
        """
        require(auth, Action.UPLOAD_DOCUMENT)
        data = _validate(DocumentCreate, document_data)

        with self._lock:
            shipment = self.get_shipment(shipment_id)
            document = Document(
                id=_new_id(),
                name=data.name,
                type=data.type,
                status=data.status,
                upload_date=self.clock(),
                url=data.url,
            )
            shipment = self._store(
                shipment.model_copy(update={"documents": shipment.documents + (document,)})
            )
            logger.info(f"Document {document.type.value} added to shipment {shipment_id}")

            payment = None
            if document.type == DocumentType.RECEIPT and shipment.status == ShipmentStatus.CUSTOMS_LIQUIDATION:
                payment = self._settle_liquidation(shipment, auth)
            elif document.type == DocumentType.BAE and shipment.status == ShipmentStatus.LIQUIDATION_PAID:
                self._transition(shipment, ShipmentStatus.BAE_GRANTED, auth)

            return DocumentUploadResult(
                shipment=self._shipments[shipment_id],
                document=document,
                payment=payment,
            )

    def update_shipment_details(
        self,
        shipment_id: str,
        updates: Union[ShipmentDetailsUpdate, Mapping[str, Any]],
        auth: Optional[AuthContext] = None,
    ) -> Shipment:
        """Shallow-merge route and transport details"""
        require(auth, Action.EDIT_DETAILS)
        data = _validate(ShipmentDetailsUpdate, updates)
        # Only the container number may be cleared; other fields are required on a shipment.
        fields = {
            k: v for k, v in data.model_dump(exclude_unset=True).items()
            if v is not None or k == "container_number"
        }
        for key in ("bl_number", "container_number"):
            if fields.get(key):
                fields[key] = fields[key].strip().upper()

        with self._lock:
            shipment = self._store(self.get_shipment(shipment_id).model_copy(update=fields))

        logger.info(f"Updated shipment {shipment_id}: {sorted(fields)}")
        return shipment

    def set_arrival_date(
        self,
        shipment_id: str,
        arrival: Union[date, str],
        auth: Optional[AuthContext] = None,
    ) -> Shipment:
        """Record the actual port arrival, which starts the free-days count"""
        require(auth, Action.ADVANCE_STATUS)
        if isinstance(arrival, datetime):
            arrival = arrival.date()
        elif isinstance(arrival, str):
            try:
                arrival = date.fromisoformat(arrival.strip())
            except ValueError:
                raise ShipmentValidationError({"arrival_date": ["Date d'arrivée invalide"]})

        with self._lock:
            shipment = self._store(self.get_shipment(shipment_id).model_copy(update={"arrival_date": arrival}))

        logger.info(f"Arrival date of shipment {shipment_id} set to {arrival.isoformat()}")
        return shipment

    def add_alert(self, shipment_id: str, message: str, auth: Optional[AuthContext] = None) -> Shipment:
        """Flag a shipment as blocked"""
        require(auth, Action.MANAGE_ALERTS)
        message = message.strip()
        if not message:
            raise ShipmentValidationError({"alert": ["Message d'alerte requis"]})

        with self._lock:
            shipment = self.get_shipment(shipment_id)
            if message in shipment.alerts:
                return shipment
            shipment = self._store(shipment.model_copy(update={"alerts": shipment.alerts + (message,)}))

        logger.warning(f"Shipment {shipment_id} blocked: {message}")
        return shipment

    def clear_alerts(self, shipment_id: str, auth: Optional[AuthContext] = None) -> Shipment:
        require(auth, Action.MANAGE_ALERTS)
        with self._lock:
            shipment = self._store(self.get_shipment(shipment_id).model_copy(update={"alerts": ()}))
        logger.info(f"Alerts cleared on shipment {shipment_id}")
        return shipment

    def check_demurrage(self, now: Optional[datetime] = None) -> List[str]:
        """
        Raise a demurrage alert on every undelivered shipment whose free
        days at port have run out. Returns the ids newly alerted.
        """
        today = (now or self.clock()).date()
        alerted = []

        with self._lock:
            for shipment in list(self._shipments.values()):
                if shipment.is_delivered or shipment.arrival_date is None:
                    continue
                deadline = shipment.arrival_date + timedelta(days=shipment.free_days)
                if today <= deadline:
                    continue
                if any(a.startswith(DEMURRAGE_ALERT_PREFIX) for a in shipment.alerts):
                    continue
                message = (
                    f"{DEMURRAGE_ALERT_PREFIX} : franchise de {shipment.free_days} jours "
                    f"dépassée depuis le {deadline.isoformat()}"
                )
                self._store(shipment.model_copy(update={"alerts": shipment.alerts + (message,)}))
                alerted.append(shipment.id)

        if alerted:
            logger.warning(f"Demurrage running on {len(alerted)} shipment(s)")
        return alerted

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def advance_status(
        self,
        shipment_id: str,
        target: Union[ShipmentStatus, str],
        auth: Optional[AuthContext] = None,
    ) -> Shipment:
        """
        Move a shipment to the next customs step.

        LIQUIDATION_PAID and DELIVERED are only reachable through
        pay_liquidation and deliver.
        """
        require(auth, Action.ADVANCE_STATUS)
        target = ShipmentStatus(target)

        with self._lock:
            shipment = self.get_shipment(shipment_id)
            if target in OPERATION_OWNED_STATES:
                raise InvalidTransition(
                    shipment.status.name, target.name, "reachable only through its dedicated operation"
                )
            return self._transition(shipment, target, auth)

    def declare(
        self,
        shipment_id: str,
        number: str,
        amount: int,
        auth: Optional[AuthContext] = None,
    ) -> Shipment:
        """Record the customs declaration and its pending liquidation expense"""
        require(auth, Action.DECLARE)
        data = _validate(DeclarationRequest, {"number": number, "amount": amount})

        with self._lock:
            shipment = self.get_shipment(shipment_id)
            expense = Expense(
                id=_new_id(),
                description=f"Liquidation Douane ({data.number})",
                amount=data.amount,
                type=ExpenseType.DISBURSEMENT,
                category=ExpenseCategory.CUSTOMS,
                paid=False,
                date=self.clock(),
            )
            shipment = self._store(shipment.model_copy(update={
                "declaration_number": data.number,
                "declared_amount": data.amount,
                "expenses": shipment.expenses + (expense,),
            }))

        audit("Déclaration Enregistrée", actor(auth), shipment_id=shipment_id,
              declaration=data.number, amount=data.amount)
        return shipment

    def pay_liquidation(
        self,
        shipment_id: str,
        auth: Optional[AuthContext] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentResult:
        """
        Pay the pending customs liquidation out of the client balance.

        Business failures are returned, never raised, and leave the shipment
        untouched.
        """
        require(auth, Action.PAY_LIQUIDATION)

        with self._lock:
            if idempotency_key and idempotency_key in self._payment_keys:
                logger.info(f"Replayed liquidation payment {idempotency_key} on shipment {shipment_id}")
                return self._payment_keys[idempotency_key]

            result = self._settle_liquidation(self.get_shipment(shipment_id), auth)
            if result.success and idempotency_key:
                self._payment_keys[idempotency_key] = result
            return result

    def deliver(
        self,
        shipment_id: str,
        driver_name: str,
        truck_plate: str,
        recipient_name: str = "",
        auth: Optional[AuthContext] = None,
    ) -> Shipment:
        """Close the file once the cargo has left the port and reached the client"""
        require(auth, Action.DELIVER)

        with self._lock:
            shipment = self.get_shipment(shipment_id)
            validate_transition(shipment, ShipmentStatus.DELIVERED)
            data = _validate(DeliveryRequest, {
                "driver_name": driver_name,
                "truck_plate": truck_plate,
                "recipient_name": recipient_name,
            })
            info = DeliveryInfo(
                driver_name=data.driver_name,
                truck_plate=data.truck_plate,
                recipient_name=data.recipient_name,
                delivery_date=self.clock(),
            )
            shipment = self._store(shipment.model_copy(update={
                "status": ShipmentStatus.DELIVERED,
                "delivery_info": info,
            }))

        audit("Changement Statut", actor(auth), shipment_id=shipment_id,
              status=ShipmentStatus.DELIVERED.value, truck=info.truck_plate)
        return shipment

    # ------------------------------------------------------------------
    # Internals (callers hold the lock)
    # ------------------------------------------------------------------

    def _store(self, shipment: Shipment) -> Shipment:
        self._shipments[shipment.id] = shipment
        return shipment

    def _transition(self, shipment: Shipment, target: ShipmentStatus, auth: Optional[AuthContext]) -> Shipment:
        validate_transition(shipment, target)
        shipment = self._store(shipment.model_copy(update={"status": target}))
        audit("Changement Statut", actor(auth), shipment_id=shipment.id, status=target.value)
        return shipment

    def _settle_liquidation(self, shipment: Shipment, auth: Optional[AuthContext]) -> PaymentResult:
        summary = compute_balance(shipment, self.strict_provision_balance)
        liquidation = next(
            (e for e in shipment.expenses if e.category == ExpenseCategory.CUSTOMS and not e.paid),
            None,
        )

        if liquidation is None:
            return PaymentResult(
                success=False,
                message=MSG_NO_LIQUIDATION,
                reason=PaymentFailureReason.NO_LIQUIDATION_PENDING,
                balance=summary.balance,
            )

        if summary.balance < liquidation.amount:
            logger.warning(
                f"Liquidation payment refused on shipment {shipment.id}: "
                f"balance {summary.balance} < required {liquidation.amount}"
            )
            return PaymentResult(
                success=False,
                message=f"Solde insuffisant ({format_gnf(summary.balance)} {settings.CURRENCY}). Provision requise.",
                reason=PaymentFailureReason.INSUFFICIENT_BALANCE,
                balance=summary.balance,
                required=liquidation.amount,
                expense_id=liquidation.id,
            )

        # Paying before the file reached liquidation would skip lifecycle steps.
        if not has_reached(shipment, ShipmentStatus.CUSTOMS_LIQUIDATION):
            return PaymentResult(
                success=False,
                message=MSG_LIQUIDATION_NOT_OPEN,
                reason=PaymentFailureReason.LIQUIDATION_NOT_OPEN,
                balance=summary.balance,
                required=liquidation.amount,
                expense_id=liquidation.id,
            )

        expenses = tuple(
            e.model_copy(update={"paid": True}) if e.id == liquidation.id else e
            for e in shipment.expenses
        )
        update: Dict[str, Any] = {"expenses": expenses}
        # A later supplementary liquidation is paid without moving the status back.
        if shipment.status == ShipmentStatus.CUSTOMS_LIQUIDATION:
            update["status"] = ShipmentStatus.LIQUIDATION_PAID
        self._store(shipment.model_copy(update=update))

        audit("Paiement Liquidation Validé", actor(auth), shipment_id=shipment.id, amount=liquidation.amount)
        return PaymentResult(
            success=True,
            message=MSG_PAYMENT_AUTHORIZED,
            balance=summary.balance - liquidation.amount,
            required=liquidation.amount,
            expense_id=liquidation.id,
        )


# Global service instance
shipment_service = ShipmentService()
