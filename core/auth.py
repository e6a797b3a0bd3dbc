"""
Explicit authentication context and role permissions.

The acting user is passed to every mutating ledger operation instead of
being read from ambient session state.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from core.exceptions import PermissionDenied


class Role(str, Enum):
    DIRECTOR = "DG / Admin"
    CREATION_AGENT = "Chargé de Création"
    ACCOUNTANT = "Comptable"
    FIELD_AGENT = "Agent de Terrain"
    CLIENT = "Client / Importateur"


class Action(str, Enum):
    CREATE_SHIPMENT = "create_shipment"
    EDIT_DETAILS = "edit_details"
    ADVANCE_STATUS = "advance_status"
    UPLOAD_DOCUMENT = "upload_document"
    RECORD_EXPENSE = "record_expense"
    DECLARE = "declare"
    PAY_LIQUIDATION = "pay_liquidation"
    DELIVER = "deliver"
    MANAGE_ALERTS = "manage_alerts"
    VIEW_ACCOUNTING = "view_accounting"


_OPERATIONS = frozenset({
    Action.ADVANCE_STATUS,
    Action.UPLOAD_DOCUMENT,
    Action.MANAGE_ALERTS,
})

ROLE_PERMISSIONS: Dict[Role, FrozenSet[Action]] = {
    Role.DIRECTOR: frozenset(Action),
    Role.CREATION_AGENT: _OPERATIONS | {
        Action.CREATE_SHIPMENT,
        Action.EDIT_DETAILS,
        Action.DECLARE,
    },
    Role.ACCOUNTANT: _OPERATIONS | {
        Action.RECORD_EXPENSE,
        Action.DECLARE,
        Action.PAY_LIQUIDATION,
        Action.VIEW_ACCOUNTING,
    },
    Role.FIELD_AGENT: _OPERATIONS | {Action.DELIVER},
    Role.CLIENT: frozenset(),
}


@dataclass(frozen=True)
class AuthContext:
    """Who is acting"""
    user_id: str
    role: Role

    def can(self, action: Action) -> bool:
        return action in ROLE_PERMISSIONS.get(self.role, frozenset())


def require(auth: Optional[AuthContext], action: Action) -> None:
    """
    Raise PermissionDenied unless ``auth`` may perform ``action``.

    ``None`` stands for an internal caller (workflow side effects, batch
    jobs) and is always allowed.
    """
    if auth is None:
        return
    if not auth.can(action):
        raise PermissionDenied(auth.role.value, action.value)


def actor(auth: Optional[AuthContext]) -> str:
    if auth is None:
        return "SYSTEM"
    return f"{auth.user_id} ({auth.role.value})"
