"""
Finance enumerations for the ledger module.
"""

import enum


class TransactionType(str, enum.Enum):
    """Ledger transaction type enumeration."""
    CREDIT = "CREDIT"  # Money entering a payment mode
    DEBIT = "DEBIT"  # Money leaving a payment mode
    SELF_TRANSFER = "SELF_TRANSFER"  # Money moving between two own payment modes


class LedgerStatus(str, enum.Enum):
    """Status of a ledger entry, also reused for its edit request."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class LedgerAuditAction(str, enum.Enum):
    """Kinds of ledger audit rows."""
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EDIT_REQUESTED = "EDIT_REQUESTED"
    EDIT_APPROVED = "EDIT_APPROVED"
    EDIT_REJECTED = "EDIT_REJECTED"
    DELETED = "DELETED"


class PartyType(str, enum.Enum):
    """Counterparty classification."""
    BUYER = "BUYER"
    SELLER = "SELLER"
    VENDOR = "VENDOR"
    CLIENT = "CLIENT"
    SUPPLIER = "SUPPLIER"


class FinancePaymentType(str, enum.Enum):
    """Whether a payment type books an expense."""
    EXPENSE = "EXPENSE"
    NON_EXPENSE = "NON_EXPENSE"
