"""
Finance master data Pydantic schemas.

Parties, heads, payment types and payment modes. Payment-mode balances are
read-only through the API: `opening_balance` is set once at creation and
`current_balance` only moves with approved ledger entries.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional
from finance_backend.app.models.finance_enums import PartyType, FinancePaymentType, TransactionType


class PartyCreate(BaseModel):
    """Schema for creating a party."""
    name: str = Field(..., min_length=1, max_length=200)
    party_type: PartyType
    contact_name: Optional[str] = Field(None, max_length=200)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    gst_number: Optional[str] = Field(None, max_length=50)
    pan_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class PartyUpdate(BaseModel):
    """Schema for updating a party."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    party_type: Optional[PartyType] = None
    contact_name: Optional[str] = Field(None, max_length=200)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    gst_number: Optional[str] = Field(None, max_length=50)
    pan_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    is_active: Optional[bool] = None


class PartyResponse(BaseModel):
    id: int
    name: str
    party_type: PartyType
    contact_name: Optional[str]
    contact_email: Optional[str]
    contact_phone: Optional[str]
    gst_number: Optional[str]
    pan_number: Optional[str]
    address: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class HeadCreate(BaseModel):
    """Schema for creating a head (transaction category)."""
    name: str = Field(..., min_length=1, max_length=200)
    department: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None


class HeadUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    department: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class HeadResponse(BaseModel):
    id: int
    name: str
    department: Optional[str]
    description: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaymentTypeCreate(BaseModel):
    """Schema for creating a payment type."""
    name: str = Field(..., min_length=1, max_length=200)
    payment_type: FinancePaymentType
    description: Optional[str] = None


class PaymentTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    payment_type: Optional[FinancePaymentType] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class PaymentTypeResponse(BaseModel):
    id: int
    name: str
    payment_type: FinancePaymentType
    description: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaymentModeCreate(BaseModel):
    """Schema for creating a payment mode. The running balance starts at the opening balance."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    opening_balance: float = Field(0.0, ge=0, description="Balance carried into the ledger")


class PaymentModeUpdate(BaseModel):
    """Balances are deliberately absent: they cannot be edited."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class PaymentModeResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    opening_balance: float
    current_balance: float
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaymentModeTotals(BaseModel):
    total_credits: float
    total_debits: float
    net_change: float


class PaymentModeDetail(PaymentModeResponse):
    """Payment mode with its approved credit/debit totals."""
    totals: PaymentModeTotals


class BalancePreview(BaseModel):
    """Projected effect of a transaction on a payment mode, nothing persisted."""
    payment_mode_id: int
    transaction_type: TransactionType
    amount: float
    current_balance: float
    projected_balance: float
    impact: float


class BalanceIntegrity(BaseModel):
    """Stored running balance versus the balance recomputed from history."""
    payment_mode_id: int
    is_valid: bool
    current_balance: float
    expected_balance: float
    discrepancy: float
