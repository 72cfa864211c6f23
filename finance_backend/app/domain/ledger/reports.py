"""
Ledger summary reports.

All rollups read APPROVED entries only. Deleted entries are still counted:
deleting an entry does not reverse its balance effect, so leaving it out
would make the summaries disagree with the stored balances.
"""

from collections import OrderedDict
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from finance_backend.app.core.exceptions import ValidationFailedError
from finance_backend.app.domain.ledger.balance import get_payment_mode_totals, verify_balance_integrity
from finance_backend.app.models.finance_enums import TransactionType, LedgerStatus
from finance_backend.app.models.ledger_entry import LedgerEntry
from finance_backend.app.models.masters import PartyMaster, HeadMaster, PaymentMode

REPORT_TYPES = ("payment-mode", "party-wise", "head-wise", "day-wise")


def _window(start_date: Optional[date], end_date: Optional[date]):
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end = datetime.combine(end_date, time.max, tzinfo=timezone.utc) if end_date else None
    return start, end


def _window_conditions(start: Optional[datetime], end: Optional[datetime]) -> list:
    conditions = [
        LedgerEntry.status == LedgerStatus.APPROVED,
        LedgerEntry.transaction_type.in_([TransactionType.CREDIT, TransactionType.DEBIT]),
    ]
    if start is not None:
        conditions.append(LedgerEntry.transaction_date >= start)
    if end is not None:
        conditions.append(LedgerEntry.transaction_date <= end)
    return conditions


def _totals(rows: List[Dict[str, Any]], *keys: str) -> Dict[str, float]:
    return {key: sum(row[key] for row in rows) for key in keys}


class ReportService:
    """Aggregate rollups behind GET /finance/reports/*."""

    @staticmethod
    async def summary(
        db: AsyncSession,
        report_type: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Dispatch to one of the summary reports.

        Raises:
            ValidationFailedError: unknown report type
        """
        builders = {
            "payment-mode": ReportService.payment_mode_summary,
            "party-wise": ReportService.party_wise_summary,
            "head-wise": ReportService.head_wise_summary,
            "day-wise": ReportService.day_wise_summary,
        }
        builder = builders.get(report_type)
        if builder is None:
            raise ValidationFailedError(
                f"Invalid report type '{report_type}'",
                details={"allowed": list(REPORT_TYPES)}
            )
        start, end = _window(start_date, end_date)
        return await builder(db, start, end)

    @staticmethod
    async def payment_mode_summary(db: AsyncSession, start=None, end=None) -> Dict[str, Any]:
        """Per active payment mode: balances plus credits/debits in the window."""
        modes = (await db.execute(
            select(PaymentMode).where(PaymentMode.is_active.is_(True)).order_by(PaymentMode.name)
        )).scalars().all()

        rows = []
        for mode in modes:
            totals = await get_payment_mode_totals(db, mode.id, start, end)
            rows.append({
                "id": mode.id,
                "name": mode.name,
                "opening_balance": mode.opening_balance,
                "current_balance": mode.current_balance,
                **totals,
            })

        totals = _totals(rows, "total_credits", "total_debits")
        totals["total_balance"] = sum(row["current_balance"] for row in rows)
        return {"type": "payment-mode", "data": rows, "totals": totals}

    @staticmethod
    async def _grouped(db: AsyncSession, column, start, end):
        result = await db.execute(
            select(
                column,
                LedgerEntry.transaction_type,
                func.coalesce(func.sum(LedgerEntry.received_amount), 0.0),
                func.coalesce(func.sum(LedgerEntry.payment_amount), 0.0),
                func.count(LedgerEntry.id),
            )
            .where(*_window_conditions(start, end))
            .group_by(column, LedgerEntry.transaction_type)
        )
        grouped: Dict[int, Dict[str, float]] = {}
        for key, transaction_type, received, paid, count in result.all():
            if key is None:
                continue
            bucket = grouped.setdefault(key, {"total_credits": 0.0, "total_debits": 0.0, "entries_count": 0})
            if transaction_type == TransactionType.CREDIT:
                bucket["total_credits"] += float(received)
            else:
                bucket["total_debits"] += float(paid)
            bucket["entries_count"] += count
        return grouped

    @staticmethod
    async def party_wise_summary(db: AsyncSession, start=None, end=None) -> Dict[str, Any]:
        grouped = await ReportService._grouped(db, LedgerEntry.party_id, start, end)
        parties = {}
        if grouped:
            result = await db.execute(select(PartyMaster).where(PartyMaster.id.in_(list(grouped))))
            parties = {party.id: party for party in result.scalars().all()}

        rows = []
        for party_id, bucket in grouped.items():
            party = parties.get(party_id)
            if party is None:
                continue
            rows.append({
                "party_id": party_id,
                "party_name": party.name,
                "party_type": party.party_type.value,
                **bucket,
                "net_amount": bucket["total_credits"] - bucket["total_debits"],
            })
        rows.sort(key=lambda row: row["party_name"])
        return {
            "type": "party-wise",
            "data": rows,
            "totals": _totals(rows, "total_credits", "total_debits", "entries_count"),
        }

    @staticmethod
    async def head_wise_summary(db: AsyncSession, start=None, end=None) -> Dict[str, Any]:
        grouped = await ReportService._grouped(db, LedgerEntry.head_id, start, end)
        heads = {}
        if grouped:
            result = await db.execute(select(HeadMaster).where(HeadMaster.id.in_(list(grouped))))
            heads = {head.id: head for head in result.scalars().all()}

        rows = []
        for head_id, bucket in grouped.items():
            head = heads.get(head_id)
            if head is None:
                continue
            rows.append({
                "head_id": head_id,
                "head_name": head.name,
                "department": head.department,
                **bucket,
                "net_amount": bucket["total_credits"] - bucket["total_debits"],
            })
        rows.sort(key=lambda row: row["head_name"])
        return {
            "type": "head-wise",
            "data": rows,
            "totals": _totals(rows, "total_credits", "total_debits", "entries_count"),
        }

    @staticmethod
    async def day_wise_summary(db: AsyncSession, start=None, end=None) -> Dict[str, Any]:
        """Credits and debits per calendar day (UTC), newest day first."""
        result = await db.execute(
            select(
                LedgerEntry.transaction_date,
                LedgerEntry.transaction_type,
                LedgerEntry.received_amount,
                LedgerEntry.payment_amount,
            )
            .where(*_window_conditions(start, end))
            .order_by(LedgerEntry.transaction_date.desc())
        )

        days: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for transaction_date, transaction_type, received, paid in result.all():
            if transaction_date.tzinfo is not None:
                transaction_date = transaction_date.astimezone(timezone.utc)
            key = transaction_date.date().isoformat()
            bucket = days.setdefault(key, {"date": key, "total_credits": 0.0, "total_debits": 0.0, "entries_count": 0})
            if transaction_type == TransactionType.CREDIT:
                bucket["total_credits"] += received or 0.0
            else:
                bucket["total_debits"] += paid or 0.0
            bucket["entries_count"] += 1

        rows = [
            {**bucket, "net_amount": bucket["total_credits"] - bucket["total_debits"]}
            for bucket in days.values()
        ]
        return {
            "type": "day-wise",
            "data": rows,
            "totals": _totals(rows, "total_credits", "total_debits", "entries_count"),
        }

    @staticmethod
    async def integrity_report(db: AsyncSession) -> Dict[str, Any]:
        """Run the balance integrity check over every active payment mode."""
        modes = (await db.execute(
            select(PaymentMode.id, PaymentMode.name)
            .where(PaymentMode.is_active.is_(True))
            .order_by(PaymentMode.name)
        )).all()

        results = []
        for mode_id, name in modes:
            check = await verify_balance_integrity(db, mode_id)
            results.append({"name": name, **check})

        return {
            "all_valid": all(check["is_valid"] for check in results),
            "invalid_count": sum(1 for check in results if not check["is_valid"]),
            "payment_modes": results,
        }
