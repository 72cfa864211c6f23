"""
Ledger Entry Lifecycle Manager.

Creates ledger entries and drives them through the approval, edit-request,
undo and soft-delete transitions.

Every public operation is one database transaction: the payment-mode
balance increment, the entry mutation and the audit row are committed
together or not at all.

State machine:
    status:               PENDING -> APPROVED | REJECTED -> PENDING (undo)
    edit_request_status:  None -> PENDING -> APPROVED | REJECTED -> PENDING (undo)
"""

import enum
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from finance_backend.app.core.config import settings
from finance_backend.app.core.exceptions import ValidationFailedError, ResourceNotFoundError, ConflictError
from finance_backend.app.db.session import atomic
from finance_backend.app.domain.ledger.balance import (
    get_payment_mode_balance,
    update_payment_mode_balance,
    reverse_balance_update,
)
from finance_backend.app.domain.ledger.serial_numbers import generate_serial_number
from finance_backend.app.models.finance_enums import TransactionType, LedgerStatus, LedgerAuditAction
from finance_backend.app.models.ledger_audit_log import LedgerAuditLog
from finance_backend.app.models.ledger_entry import LedgerEntry
from finance_backend.app.models.masters import PartyMaster, HeadMaster, PaymentTypeMaster, PaymentMode
from finance_backend.app.schemas.ledger import LedgerEntryCreate, LedgerEntryUpdate, LedgerEditChanges

logger = logging.getLogger("finance_backend.ledger")

EDITABLE_FIELDS = tuple(LedgerEditChanges.model_fields)
AMOUNT_FIELDS = frozenset({"payment_amount", "component_a", "component_b", "received_amount", "transfer_amount"})
BALANCE_FIELDS = AMOUNT_FIELDS | {"payment_mode_id", "from_payment_mode_id", "to_payment_mode_id"}
DECISION_FIELDS = ("status", "approved_by_id", "approved_at", "rejection_reason", "current_balance")
EDIT_STATE_FIELDS = ("edit_request_status", "edit_approved_by_id", "edit_approved_at", "edit_count")

# field -> (model, label) for every master reference an entry can carry
MASTER_REFERENCES = {
    "party_id": (PartyMaster, "party"),
    "head_id": (HeadMaster, "head"),
    "payment_type_id": (PaymentTypeMaster, "payment type"),
    "payment_mode_id": (PaymentMode, "payment mode"),
    "from_payment_mode_id": (PaymentMode, "source payment mode"),
    "to_payment_mode_id": (PaymentMode, "destination payment mode"),
}

_COMMON_FIELDS = {"description", "transaction_date"}
FIELDS_BY_TYPE = {
    TransactionType.CREDIT: _COMMON_FIELDS | {
        "party_id", "head_id", "payment_type_id", "payment_mode_id", "received_amount",
    },
    TransactionType.DEBIT: _COMMON_FIELDS | {
        "party_id", "head_id", "payment_type_id", "payment_mode_id",
        "payment_amount", "component_a", "component_b",
    },
    TransactionType.SELF_TRANSFER: _COMMON_FIELDS | {
        "from_payment_mode_id", "to_payment_mode_id", "transfer_amount",
    },
}

COMPONENT_FILTERS = ("all", "aOnly", "bOnly", "both")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they were stored as UTC
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _money(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(float(value), 2)


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _snapshot(entry: LedgerEntry, fields: Iterable[str] = EDITABLE_FIELDS) -> Dict[str, Any]:
    """JSON-safe copy of the given entry fields, for audit rows."""
    return {field: _json_value(getattr(entry, field)) for field in fields}


def _write_audit(
    db: AsyncSession,
    entry: LedgerEntry,
    action: LedgerAuditAction,
    actor_id: int,
    previous: Optional[Dict[str, Any]] = None,
    new: Optional[Dict[str, Any]] = None,
    reason: Optional[str] = None,
) -> None:
    db.add(LedgerAuditLog(
        ledger_entry_id=entry.id,
        action=action,
        previous_data=previous,
        new_data=new,
        reason=reason,
        performed_by_id=actor_id,
        performed_at=_now(),
    ))


async def _require_active_master(db: AsyncSession, field: str, record_id: Optional[int]):
    model, label = MASTER_REFERENCES[field]
    if record_id is None:
        raise ValidationFailedError(f"{label.capitalize()} is required", details={"field": field})
    record = await db.get(model, record_id)
    if record is None or not record.is_active:
        raise ValidationFailedError(
            f"Invalid or inactive {label}",
            details={"field": field, "id": record_id}
        )
    return record


async def _validate_master_changes(db: AsyncSession, changes: Dict[str, Any]) -> None:
    for field, value in changes.items():
        if field in MASTER_REFERENCES:
            await _require_active_master(db, field, value)


def _required_text(value: Optional[str], message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationFailedError(message)
    return text


def _ensure_not_deleted(entry: LedgerEntry) -> None:
    if entry.is_deleted:
        raise ValidationFailedError(
            "Ledger entry has been deleted",
            details={"serial_number": entry.serial_number}
        )


def _ensure_fields_apply(entry: LedgerEntry, changes: Dict[str, Any]) -> None:
    not_applicable = sorted(set(changes) - FIELDS_BY_TYPE[entry.transaction_type])
    if not_applicable:
        raise ValidationFailedError(
            f"Cannot edit fields for {entry.transaction_type.value} entries: {', '.join(not_applicable)}",
            details={"fields": not_applicable}
        )
    cleared = sorted(field for field, value in changes.items() if value is None)
    if cleared:
        raise ValidationFailedError(f"Fields cannot be cleared: {', '.join(cleared)}", details={"fields": cleared})


def _debit_amounts(data: LedgerEntryCreate) -> Tuple[float, Optional[float], Optional[float]]:
    """Resolve (payment_amount, component_a, component_b) for a debit."""
    component_a, component_b = _money(data.component_a), _money(data.component_b)
    if (component_a is not None and component_a < 0) or (component_b is not None and component_b < 0):
        raise ValidationFailedError("Components cannot be negative")

    if component_a is None and component_b is None:
        total = _money(data.payment_amount)
    else:
        total = _money((component_a or 0.0) + (component_b or 0.0))
        if data.payment_amount is not None:
            _ensure_components_match(data.payment_amount, component_a, component_b)

    if total is None or total <= 0:
        raise ValidationFailedError("Payment amount must be greater than 0")
    return total, component_a, component_b


def _ensure_components_match(
    payment_amount: Optional[float],
    component_a: Optional[float],
    component_b: Optional[float],
) -> None:
    if component_a is None and component_b is None:
        return
    total = _money((component_a or 0.0) + (component_b or 0.0))
    if payment_amount is None or abs(payment_amount - total) > settings.ledger_balance_tolerance:
        raise ValidationFailedError(
            "payment_amount must equal component_a + component_b",
            details={"payment_amount": payment_amount, "components_total": total}
        )


def _edited_debit_amounts(
    entry: LedgerEntry, changes: Dict[str, Any]
) -> Tuple[float, Optional[float], Optional[float]]:
    """
    Resolve (payment_amount, component_a, component_b) after an edit.

    A component change without an explicit payment_amount re-derives the
    total; any other combination must still add up.
    """
    component_a = _money(changes.get("component_a", entry.component_a))
    component_b = _money(changes.get("component_b", entry.component_b))
    if "payment_amount" in changes:
        payment_amount = _money(changes["payment_amount"])
    elif {"component_a", "component_b"} & changes.keys():
        payment_amount = _money((component_a or 0.0) + (component_b or 0.0))
    else:
        payment_amount = entry.payment_amount

    _ensure_components_match(payment_amount, component_a, component_b)
    if not payment_amount or payment_amount <= 0:
        raise ValidationFailedError("Payment amount must be greater than 0")
    return payment_amount, component_a, component_b


def _positive_amount(value: Optional[float], field: str) -> float:
    amount = _money(value)
    if amount is None or amount <= 0:
        raise ValidationFailedError(f"{field} must be greater than 0", details={"field": field})
    return amount


def _within_undo_window(decided_at: datetime) -> bool:
    window = settings.ledger_undo_window_seconds
    if window <= 0:
        return True
    return (_now() - _as_utc(decided_at)).total_seconds() <= window


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _day_end(value: date) -> datetime:
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


async def _apply_balance_effect(db: AsyncSession, entry: LedgerEntry, reverse: bool = False) -> float:
    """
    Move (or, with reverse=True, restore) the balances an entry affects.

    Returns the resulting balance of the entry's primary payment mode (the
    source mode for a self transfer).
    """
    apply = reverse_balance_update if reverse else update_payment_mode_balance
    if entry.transaction_type == TransactionType.SELF_TRANSFER:
        primary = await apply(db, entry.from_payment_mode_id, TransactionType.DEBIT, entry.transfer_amount)
        await apply(db, entry.to_payment_mode_id, TransactionType.CREDIT, entry.transfer_amount)
        return primary
    return await apply(db, entry.payment_mode_id, entry.transaction_type, entry.amount)


class LedgerService:
    """
    Ledger entry operations.

    `actor` is the dict produced by `get_current_user`; only `user_id` is
    read here. Permission checks happen at the route layer.
    """

    @staticmethod
    async def _load_entry(db: AsyncSession, entry_id: int) -> LedgerEntry:
        result = await db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.id == entry_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            raise ResourceNotFoundError("Ledger entry", entry_id)
        return entry

    @staticmethod
    async def create_entry(db: AsyncSession, actor: dict, data: LedgerEntryCreate) -> LedgerEntry:
        """
        Create a ledger entry.

        CREDIT entries are approved on creation and move the balance at once;
        DEBIT and SELF_TRANSFER entries start PENDING with balances untouched.

        Raises:
            ValidationFailedError: missing/inactive masters, bad amounts
            ConflictError: serial number taken by a concurrent create
        """
        actor_id = actor["user_id"]
        transaction_type = data.transaction_type
        description = _required_text(data.description, "Description is required")
        names: Dict[str, str] = {}

        if transaction_type == TransactionType.SELF_TRANSFER:
            if data.from_payment_mode_id is not None and data.from_payment_mode_id == data.to_payment_mode_id:
                raise ValidationFailedError("Cannot transfer to the same payment mode")
            amount = _positive_amount(data.transfer_amount, "transfer_amount")
            source = await _require_active_master(db, "from_payment_mode_id", data.from_payment_mode_id)
            destination = await _require_active_master(db, "to_payment_mode_id", data.to_payment_mode_id)
            names.update(from_payment_mode=source.name, to_payment_mode=destination.name)
            affected_mode_id = source.id
        else:
            if transaction_type == TransactionType.CREDIT:
                amount = _positive_amount(data.received_amount, "received_amount")
            else:
                amount, component_a, component_b = _debit_amounts(data)
            for field, key in (("party_id", "party"), ("head_id", "head"),
                               ("payment_type_id", "payment_type"), ("payment_mode_id", "payment_mode")):
                record = await _require_active_master(db, field, getattr(data, field))
                names[key] = record.name
            affected_mode_id = data.payment_mode_id

        serial_number = None
        try:
            async with atomic(db):
                serial_number = await generate_serial_number(db, transaction_type)
                opening_balance = await get_payment_mode_balance(db, affected_mode_id)

                entry = LedgerEntry(
                    serial_number=serial_number,
                    transaction_type=transaction_type,
                    transaction_date=data.transaction_date or _now(),
                    description=description,
                    payment_mode_id=affected_mode_id,
                    opening_balance=opening_balance,
                    current_balance=opening_balance,
                    status=LedgerStatus.PENDING,
                    created_by_id=actor_id,
                    edit_count=0,
                    is_deleted=False,
                )
                if transaction_type == TransactionType.SELF_TRANSFER:
                    entry.from_payment_mode_id = data.from_payment_mode_id
                    entry.to_payment_mode_id = data.to_payment_mode_id
                    entry.transfer_amount = amount
                else:
                    entry.party_id = data.party_id
                    entry.head_id = data.head_id
                    entry.payment_type_id = data.payment_type_id

                if transaction_type == TransactionType.CREDIT:
                    entry.received_amount = amount
                    entry.current_balance = await update_payment_mode_balance(
                        db, affected_mode_id, TransactionType.CREDIT, amount
                    )
                    entry.status = LedgerStatus.APPROVED
                    entry.approved_by_id = actor_id
                    entry.approved_at = _now()
                elif transaction_type == TransactionType.DEBIT:
                    entry.payment_amount = amount
                    entry.component_a = component_a
                    entry.component_b = component_b

                db.add(entry)
                await db.flush()

                _write_audit(db, entry, LedgerAuditAction.CREATED, actor_id, new={
                    "serial_number": serial_number,
                    "transaction_type": transaction_type.value,
                    "amount": amount,
                    "status": entry.status.value,
                    "opening_balance": opening_balance,
                    "current_balance": entry.current_balance,
                    **names,
                })
        except IntegrityError as exc:
            logger.warning("Ledger create conflict for serial %s: %s", serial_number, exc.orig)
            raise ConflictError(
                "Ledger entry conflicts with a concurrent write, retry the request",
                details={"serial_number": serial_number}
            ) from exc

        await db.refresh(entry)
        logger.info(
            "Ledger entry %s created by user %s (%s, %.2f, %s)",
            entry.serial_number, actor_id, transaction_type.value, amount, entry.status.value
        )
        return entry

    @staticmethod
    async def _decide(
        db: AsyncSession,
        entry: LedgerEntry,
        actor_id: int,
        action: str,
        rejection_reason: Optional[str],
    ) -> None:
        _ensure_not_deleted(entry)
        if entry.transaction_type == TransactionType.CREDIT:
            raise ValidationFailedError("Credit entries are auto-approved", details={"serial_number": entry.serial_number})
        if entry.status != LedgerStatus.PENDING:
            raise ValidationFailedError(
                f"Entry {entry.serial_number} is not pending",
                details={"serial_number": entry.serial_number, "status": entry.status.value}
            )

        previous = _snapshot(entry, DECISION_FIELDS)

        if action == "approve":
            balance_before = await get_payment_mode_balance(db, entry.payment_mode_id)
            balance_after = await _apply_balance_effect(db, entry)
            entry.status = LedgerStatus.APPROVED
            entry.rejection_reason = None
            entry.current_balance = balance_after
            entry.approved_by_id = actor_id
            entry.approved_at = _now()
            _write_audit(db, entry, LedgerAuditAction.APPROVED, actor_id, previous=previous, new={
                **_snapshot(entry, DECISION_FIELDS),
                "balance_before": balance_before,
                "balance_after": balance_after,
            })
        else:
            reason = _required_text(rejection_reason, "Rejection reason is required")
            entry.status = LedgerStatus.REJECTED
            entry.rejection_reason = reason
            entry.approved_by_id = actor_id
            entry.approved_at = _now()
            _write_audit(
                db, entry, LedgerAuditAction.REJECTED, actor_id,
                previous=previous, new=_snapshot(entry, DECISION_FIELDS), reason=reason
            )

    @staticmethod
    async def decide_entry(
        db: AsyncSession,
        actor: dict,
        entry_id: int,
        action: str,
        rejection_reason: Optional[str] = None,
    ) -> LedgerEntry:
        """Approve or reject a pending DEBIT / SELF_TRANSFER entry."""
        async with atomic(db):
            entry = await LedgerService._load_entry(db, entry_id)
            await LedgerService._decide(db, entry, actor["user_id"], action, rejection_reason)

        await db.refresh(entry)
        logger.info(
            "Ledger entry %s %s by user %s",
            entry.serial_number, "approved" if action == "approve" else "rejected", actor["user_id"]
        )
        return entry

    @staticmethod
    async def bulk_decide(
        db: AsyncSession,
        actor: dict,
        entry_ids: List[int],
        action: str,
        rejection_reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Approve or reject several entries at once.

        All-or-nothing: one missing or non-pending entry fails the whole batch.
        """
        ids = list(dict.fromkeys(entry_ids))
        if not ids:
            raise ValidationFailedError("No entries selected")

        async with atomic(db):
            result = await db.execute(
                select(LedgerEntry)
                .where(LedgerEntry.id.in_(ids))
                .order_by(LedgerEntry.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            entries = result.scalars().all()
            missing = sorted(set(ids) - {entry.id for entry in entries})
            if missing:
                raise ResourceNotFoundError("Ledger entry", missing)
            for entry in entries:
                await LedgerService._decide(db, entry, actor["user_id"], action, rejection_reason)

        logger.info("Bulk %s of %d ledger entries by user %s", action, len(ids), actor["user_id"])
        return {
            "approved": len(ids) if action == "approve" else 0,
            "rejected": len(ids) if action == "reject" else 0,
            "ids": ids,
        }

    @staticmethod
    async def update_pending_entry(
        db: AsyncSession,
        actor: dict,
        entry_id: int,
        data: LedgerEntryUpdate,
    ) -> LedgerEntry:
        """Direct edit of descriptive fields on an entry that is not approved yet."""
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationFailedError("No changes provided")

        async with atomic(db):
            entry = await LedgerService._load_entry(db, entry_id)
            _ensure_not_deleted(entry)
            if entry.status == LedgerStatus.APPROVED:
                raise ValidationFailedError("Approved entries can only be changed through an edit request")
            _ensure_fields_apply(entry, changes)
            await _validate_master_changes(db, changes)

            previous = _snapshot(entry, changes)
            for field, value in changes.items():
                setattr(entry, field, value)
            _write_audit(
                db, entry, LedgerAuditAction.UPDATED, actor["user_id"],
                previous=previous, new=_snapshot(entry, changes)
            )

        await db.refresh(entry)
        return entry

    @staticmethod
    async def request_edit(
        db: AsyncSession,
        actor: dict,
        entry_id: int,
        reason: Optional[str],
        changes: Dict[str, Any],
    ) -> LedgerEntry:
        """
        Attach an edit request to an approved entry.

        The proposed changes are validated now and again when approved.
        """
        reason = _required_text(reason, "Edit reason is required")
        if not changes:
            raise ValidationFailedError("No changes provided")

        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationFailedError(f"Cannot edit fields: {', '.join(unknown)}", details={"fields": unknown})
        try:
            parsed = LedgerEditChanges.model_validate(changes)
        except ValidationError as exc:
            raise ValidationFailedError("Invalid edit changes", details={"errors": [
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in exc.errors()
            ]}) from exc

        async with atomic(db):
            entry = await LedgerService._load_entry(db, entry_id)
            _ensure_not_deleted(entry)
            if entry.status != LedgerStatus.APPROVED:
                raise ValidationFailedError("Only approved entries can have edit requests")
            if entry.edit_request_status == LedgerStatus.PENDING:
                raise ValidationFailedError("An edit request is already pending for this entry")
            if entry.edit_count >= settings.ledger_max_edits:
                raise ValidationFailedError(
                    f"Maximum number of edits ({settings.ledger_max_edits}) reached",
                    details={"edit_count": entry.edit_count}
                )

            values = parsed.model_dump(exclude_unset=True)
            _ensure_fields_apply(entry, values)
            if entry.transaction_type == TransactionType.DEBIT:
                _edited_debit_amounts(entry, values)
            await _validate_master_changes(db, values)

            payload = parsed.model_dump(mode="json", exclude_unset=True)
            entry.edit_request_status = LedgerStatus.PENDING
            entry.edit_request_reason = reason
            entry.edit_request_data = payload
            entry.edit_requested_by_id = actor["user_id"]
            entry.edit_requested_at = _now()
            entry.edit_approval_reason = None
            entry.edit_approved_by_id = None
            entry.edit_approved_at = None
            _write_audit(
                db, entry, LedgerAuditAction.EDIT_REQUESTED, actor["user_id"],
                previous=_snapshot(entry, payload), new=payload, reason=reason
            )

        await db.refresh(entry)
        logger.info("Edit requested on ledger entry %s by user %s", entry.serial_number, actor["user_id"])
        return entry

    @staticmethod
    def _merge_changes(entry: LedgerEntry, changes: Dict[str, Any]) -> None:
        debit_amounts = None
        if entry.transaction_type == TransactionType.DEBIT:
            debit_amounts = _edited_debit_amounts(entry, changes)

        for field, value in changes.items():
            setattr(entry, field, _money(value) if field in AMOUNT_FIELDS else value)

        if debit_amounts is not None:
            entry.payment_amount, entry.component_a, entry.component_b = debit_amounts
        elif entry.transaction_type == TransactionType.SELF_TRANSFER:
            if entry.from_payment_mode_id == entry.to_payment_mode_id:
                raise ValidationFailedError("Cannot transfer to the same payment mode")
            entry.payment_mode_id = entry.from_payment_mode_id

    @staticmethod
    async def approve_edit(
        db: AsyncSession,
        actor: dict,
        entry_id: int,
        reason: Optional[str] = None,
    ) -> LedgerEntry:
        """
        Apply a pending edit request to the entry.

        Payment-mode balances are left as they are unless
        `ledger_rebalance_on_edit` is enabled; an amount or payment-mode change
        then reverses the entry's old effect and applies the new one.
        """
        actor_id = actor["user_id"]
        async with atomic(db):
            entry = await LedgerService._load_entry(db, entry_id)
            _ensure_not_deleted(entry)
            if entry.edit_request_status != LedgerStatus.PENDING or not entry.edit_request_data:
                raise ValidationFailedError("No pending edit request found.")

            payload = entry.edit_request_data
            changes = LedgerEditChanges.model_validate(payload).model_dump(exclude_unset=True)
            _ensure_fields_apply(entry, changes)
            await _validate_master_changes(db, changes)

            previous = _snapshot(entry)
            rebalance = (
                settings.ledger_rebalance_on_edit
                and entry.status == LedgerStatus.APPROVED
                and bool(BALANCE_FIELDS & changes.keys())
            )
            if rebalance:
                await _apply_balance_effect(db, entry, reverse=True)
            LedgerService._merge_changes(entry, changes)
            if rebalance:
                entry.current_balance = await _apply_balance_effect(db, entry)

            entry.edit_count = (entry.edit_count or 0) + 1
            entry.edit_previous_data = {"previous": previous, "changes": payload, "rebalanced": rebalance}
            entry.edit_request_data = None
            entry.edit_request_status = LedgerStatus.APPROVED
            entry.edit_approval_reason = reason
            entry.edit_approved_by_id = actor_id
            entry.edit_approved_at = _now()

            _write_audit(
                db, entry, LedgerAuditAction.EDIT_APPROVED, actor_id,
                new={"changes": payload, "edit_count": entry.edit_count, "rebalanced": rebalance},
                reason=reason
            )
            _write_audit(
                db, entry, LedgerAuditAction.UPDATED, actor_id,
                previous=previous, new=_snapshot(entry), reason=reason
            )

        await db.refresh(entry)
        if not rebalance and BALANCE_FIELDS & changes.keys():
            logger.warning(
                "Edit on ledger entry %s changed amounts or payment modes; balances were not recalculated",
                entry.serial_number
            )
        logger.info("Edit approved on ledger entry %s by user %s", entry.serial_number, actor_id)
        return entry

    @staticmethod
    async def reject_edit(
        db: AsyncSession,
        actor: dict,
        entry_id: int,
        reason: Optional[str] = None,
    ) -> LedgerEntry:
        actor_id = actor["user_id"]
        async with atomic(db):
            entry = await LedgerService._load_entry(db, entry_id)
            _ensure_not_deleted(entry)
            if entry.edit_request_status != LedgerStatus.PENDING:
                raise ValidationFailedError("No pending edit request found.")

            entry.edit_request_status = LedgerStatus.REJECTED
            entry.edit_approval_reason = reason
            entry.edit_approved_by_id = actor_id
            entry.edit_approved_at = _now()
            _write_audit(
                db, entry, LedgerAuditAction.EDIT_REJECTED, actor_id,
                new={"changes": entry.edit_request_data}, reason=reason
            )

        await db.refresh(entry)
        logger.info("Edit rejected on ledger entry %s by user %s", entry.serial_number, actor_id)
        return entry

    @staticmethod
    def _undo_candidates(entry: LedgerEntry, actor_id: int) -> List[Tuple[str, datetime]]:
        candidates = []
        if entry.approved_by_id == actor_id and entry.approved_at is not None:
            if entry.status == LedgerStatus.APPROVED and entry.transaction_type in (
                TransactionType.DEBIT, TransactionType.SELF_TRANSFER
            ):
                candidates.append(("approval", _as_utc(entry.approved_at)))
            elif entry.status == LedgerStatus.REJECTED and entry.transaction_type == TransactionType.DEBIT:
                candidates.append(("rejection", _as_utc(entry.approved_at)))
        if (
            entry.edit_approved_by_id == actor_id
            and entry.edit_approved_at is not None
            and entry.edit_request_status in (LedgerStatus.APPROVED, LedgerStatus.REJECTED)
        ):
            candidates.append(("edit decision", _as_utc(entry.edit_approved_at)))
        return candidates

    @staticmethod
    async def _undo_edit_decision(db: AsyncSession, entry: LedgerEntry) -> None:
        if entry.edit_request_status == LedgerStatus.APPROVED:
            stored = entry.edit_previous_data or {}
            rebalance = bool(stored.get("rebalanced")) and entry.status == LedgerStatus.APPROVED
            if rebalance:
                await _apply_balance_effect(db, entry, reverse=True)

            restored = LedgerEditChanges.model_validate(stored.get("previous") or {}).model_dump(exclude_unset=True)
            for field, value in restored.items():
                setattr(entry, field, value)
            if rebalance:
                await _apply_balance_effect(db, entry)

            entry.edit_request_data = stored.get("changes")
            entry.edit_previous_data = None
            entry.edit_count = max((entry.edit_count or 0) - 1, 0)

        entry.edit_request_status = LedgerStatus.PENDING
        entry.edit_approval_reason = None
        entry.edit_approved_by_id = None
        entry.edit_approved_at = None

    @staticmethod
    async def undo(db: AsyncSession, actor: dict, entry_id: int) -> LedgerEntry:
        """
        Undo the caller's own most recent decision on an entry.

        Undoable: a DEBIT or SELF_TRANSFER approval (balances restored), a
        DEBIT rejection, and an edit-request approval or rejection.

        Raises:
            ValidationFailedError: "Nothing to undo" or "Undo window expired"
        """
        actor_id = actor["user_id"]
        async with atomic(db):
            entry = await LedgerService._load_entry(db, entry_id)
            _ensure_not_deleted(entry)

            candidates = LedgerService._undo_candidates(entry, actor_id)
            if not candidates:
                raise ValidationFailedError("Nothing to undo", details={"serial_number": entry.serial_number})
            kind, decided_at = max(candidates, key=lambda candidate: candidate[1])
            if not _within_undo_window(decided_at):
                raise ValidationFailedError(
                    "Undo window expired",
                    details={"window_seconds": settings.ledger_undo_window_seconds}
                )

            tracked = DECISION_FIELDS + EDIT_STATE_FIELDS
            previous = _snapshot(entry, tracked)

            if kind == "edit decision":
                await LedgerService._undo_edit_decision(db, entry)
            else:
                if kind == "approval":
                    if entry.edit_request_status == LedgerStatus.PENDING:
                        raise ValidationFailedError("Resolve the pending edit request before undoing the approval")
                    await _apply_balance_effect(db, entry, reverse=True)
                entry.status = LedgerStatus.PENDING
                entry.approved_by_id = None
                entry.approved_at = None
                entry.rejection_reason = None
                entry.current_balance = entry.opening_balance

            _write_audit(
                db, entry, LedgerAuditAction.UPDATED, actor_id,
                previous=previous, new=_snapshot(entry, tracked), reason=f"Undo {kind}"
            )

        await db.refresh(entry)
        logger.info("Undid %s on ledger entry %s by user %s", kind, entry.serial_number, actor_id)
        return entry

    @staticmethod
    async def soft_delete(db: AsyncSession, actor: dict, entry_id: int, reason: Optional[str]) -> LedgerEntry:
        """Flag an entry as deleted. Balances are not reversed."""
        reason = _required_text(reason, "Delete reason is required")
        async with atomic(db):
            entry = await LedgerService._load_entry(db, entry_id)
            if entry.is_deleted:
                raise ValidationFailedError("Ledger entry is already deleted")

            entry.is_deleted = True
            entry.deleted_at = _now()
            entry.deleted_by_id = actor["user_id"]
            entry.deleted_reason = reason
            _write_audit(
                db, entry, LedgerAuditAction.DELETED, actor["user_id"],
                previous={"is_deleted": False}, new={"is_deleted": True}, reason=reason
            )

        await db.refresh(entry)
        logger.info("Ledger entry %s deleted by user %s", entry.serial_number, actor["user_id"])
        return entry

    @staticmethod
    async def get_entry(db: AsyncSession, entry_id: int) -> Tuple[LedgerEntry, List[LedgerAuditLog]]:
        """Entry plus its audit trail, newest first."""
        entry = await db.get(LedgerEntry, entry_id)
        if entry is None:
            raise ResourceNotFoundError("Ledger entry", entry_id)
        result = await db.execute(
            select(LedgerAuditLog)
            .where(LedgerAuditLog.ledger_entry_id == entry_id)
            .order_by(LedgerAuditLog.performed_at.desc(), LedgerAuditLog.id.desc())
        )
        return entry, list(result.scalars().all())

    @staticmethod
    async def list_entries(
        db: AsyncSession,
        transaction_type: Optional[TransactionType] = None,
        status: Optional[LedgerStatus] = None,
        edit_request_status: Optional[LedgerStatus] = None,
        party_id: Optional[int] = None,
        head_id: Optional[int] = None,
        payment_mode_id: Optional[int] = None,
        payment_type_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        component_filter: str = "all",
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Tuple[List[LedgerEntry], int]:
        """
        Filtered page of non-deleted entries, newest transaction date first.

        Returns:
            (entries, total matching count)
        """
        if component_filter not in COMPONENT_FILTERS:
            raise ValidationFailedError(
                f"Invalid component filter '{component_filter}'",
                details={"allowed": list(COMPONENT_FILTERS)}
            )
        limit = limit or settings.ledger_page_size
        page = max(page, 1)

        conditions = [LedgerEntry.is_deleted.is_(False)]
        for column, value in (
            (LedgerEntry.transaction_type, transaction_type),
            (LedgerEntry.status, status),
            (LedgerEntry.edit_request_status, edit_request_status),
            (LedgerEntry.party_id, party_id),
            (LedgerEntry.head_id, head_id),
            (LedgerEntry.payment_mode_id, payment_mode_id),
            (LedgerEntry.payment_type_id, payment_type_id),
        ):
            if value is not None:
                conditions.append(column == value)
        if start_date is not None:
            conditions.append(LedgerEntry.transaction_date >= _day_start(start_date))
        if end_date is not None:
            conditions.append(LedgerEntry.transaction_date <= _day_end(end_date))

        a_set, b_set = LedgerEntry.component_a > 0, LedgerEntry.component_b > 0
        a_unset = or_(LedgerEntry.component_a.is_(None), LedgerEntry.component_a == 0)
        b_unset = or_(LedgerEntry.component_b.is_(None), LedgerEntry.component_b == 0)
        if component_filter == "aOnly":
            conditions.append(and_(a_set, b_unset))
        elif component_filter == "bOnly":
            conditions.append(and_(a_unset, b_set))
        elif component_filter == "both":
            conditions.append(and_(a_set, b_set))

        query = select(LedgerEntry).outerjoin(PartyMaster, LedgerEntry.party_id == PartyMaster.id)
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(or_(
                LedgerEntry.serial_number.ilike(pattern),
                LedgerEntry.description.ilike(pattern),
                PartyMaster.name.ilike(pattern),
            ))
        query = query.where(*conditions)

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
        result = await db.execute(
            query.order_by(LedgerEntry.transaction_date.desc(), LedgerEntry.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total
