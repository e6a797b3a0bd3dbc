"""
Accounting journal for the Customs Transit Ledger

Flattens the expenses of every shipment into one transaction journal and
computes period totals and cash-in/cash-out series from it.
"""

import pandas as pd
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
import logging
from dataclasses import dataclass, asdict, field
from enum import Enum

from core.auth import Action, AuthContext, require
from core.models import ExpenseType, Shipment

logger = logging.getLogger(__name__)

JOURNAL_COLUMNS = [
    "expense_id",
    "shipment_id",
    "tracking_number",
    "client_name",
    "description",
    "amount",
    "type",
    "category",
    "paid",
    "date",
]

INCOME_TYPES = [ExpenseType.PROVISION.value]
OUTGOING_TYPES = [ExpenseType.DISBURSEMENT.value, ExpenseType.FEE.value]


class TimeRange(Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


@dataclass
class AccountingReport:
    """Accounting report structure"""
    time_range: TimeRange
    generated_at: datetime
    entries: int
    income: int
    expense: int
    balance: int
    series: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self):
        data = asdict(self)
        data["time_range"] = self.time_range.value
        return data


def period_start(time_range: TimeRange, now: datetime) -> Optional[datetime]:
    """First instant of the period containing ``now``; weeks start on Monday"""
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_range == TimeRange.DAY:
        return start_of_day
    if time_range == TimeRange.WEEK:
        return start_of_day - timedelta(days=start_of_day.weekday())
    if time_range == TimeRange.MONTH:
        return start_of_day.replace(day=1)
    if time_range == TimeRange.YEAR:
        return start_of_day.replace(month=1, day=1)
    return None


class AccountingEngine:
    """
    Cross-shipment bookkeeping: journal, totals and grouped series
    """

    def build_journal(self, shipments: Iterable[Shipment]) -> pd.DataFrame:
        """One row per expense, newest first"""
        rows = [
            {
                "expense_id": e.id,
                "shipment_id": s.id,
                "tracking_number": s.tracking_number,
                "client_name": s.client_name,
                "description": e.description,
                "amount": e.amount,
                "type": e.type.value,
                "category": e.category.value,
                "paid": e.paid,
                "date": e.date,
            }
            for s in shipments
            for e in s.expenses
        ]
        journal = pd.DataFrame(rows, columns=JOURNAL_COLUMNS)
        journal["date"] = pd.to_datetime(journal["date"])
        journal["paid"] = journal["paid"].astype(bool)
        return journal.sort_values("date", ascending=False, kind="stable").reset_index(drop=True)

    def filter_period(self, journal: pd.DataFrame, time_range: TimeRange, now: datetime) -> pd.DataFrame:
        """Entries between the start of the period and ``now``"""
        mask = journal["date"] <= pd.Timestamp(now)
        start = period_start(time_range, now)
        if start is not None:
            mask &= journal["date"] >= pd.Timestamp(start)
        return journal[mask]

    def totals(self, journal: pd.DataFrame) -> Dict[str, int]:
        """Income is received provisions; expense is paid disbursements and fees"""
        paid = journal[journal["paid"]]
        income = int(paid.loc[paid["type"].isin(INCOME_TYPES), "amount"].sum())
        expense = int(paid.loc[paid["type"].isin(OUTGOING_TYPES), "amount"].sum())
        return {"income": income, "expense": expense, "balance": income - expense}

    def series(self, journal: pd.DataFrame, time_range: TimeRange) -> List[Dict[str, Any]]:
        """Cash in / cash out per period bucket, in chronological order"""
        paid = journal[journal["paid"]]
        if paid.empty:
            return []

        if time_range == TimeRange.DAY:
            period = paid["date"].dt.floor("min")
            label = "%H:%M"
        elif time_range == TimeRange.YEAR:
            period = paid["date"].dt.to_period("M").dt.start_time
            label = "%Y-%m"
        else:
            period = paid["date"].dt.normalize()
            label = "%d/%m"

        frame = paid.assign(
            period=period,
            inflow=paid["amount"].where(paid["type"].isin(INCOME_TYPES), 0),
            outflow=paid["amount"].where(paid["type"].isin(OUTGOING_TYPES), 0),
        )
        grouped = frame.groupby("period", sort=True)[["inflow", "outflow"]].sum().reset_index()

        return [
            {"name": row.period.strftime(label), "in": int(row.inflow), "out": int(row.outflow)}
            for row in grouped.itertuples(index=False)
        ]

    def client_balances(self, journal: pd.DataFrame) -> pd.DataFrame:
        """Received provisions and paid outgoings per client"""
        paid = journal[journal["paid"]]
        frame = paid.assign(
            received=paid["amount"].where(paid["type"].isin(INCOME_TYPES), 0),
            spent=paid["amount"].where(paid["type"].isin(OUTGOING_TYPES), 0),
        )
        balances = frame.groupby("client_name")[["received", "spent"]].sum()
        balances["balance"] = balances["received"] - balances["spent"]
        return balances.sort_values("balance")

    def generate_report(
        self,
        shipments: Iterable[Shipment],
        time_range: TimeRange = TimeRange.MONTH,
        now: Optional[datetime] = None,
        auth: Optional[AuthContext] = None,
    ) -> AccountingReport:
        """Journal totals and series for one period"""
        require(auth, Action.VIEW_ACCOUNTING)
        now = now or datetime.now()

        journal = self.filter_period(self.build_journal(shipments), time_range, now)
        totals = self.totals(journal)
        logger.info(f"Accounting report ({time_range.value}): {len(journal)} entries, balance {totals['balance']}")

        return AccountingReport(
            time_range=time_range,
            generated_at=now,
            entries=len(journal),
            income=totals["income"],
            expense=totals["expense"],
            balance=totals["balance"],
            series=self.series(journal, time_range),
        )


# Global engine instance
accounting_engine = AccountingEngine()
