"""
Pydantic schemas for ledger requests and responses
"""

from decimal import Decimal
from datetime import date, datetime
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TransferRequest(BaseModel):
    from_account_number: int
    to_account_number: int
    amount: Decimal = Field(..., gt=0, description="Positive decimal amount")
    reason: str = Field("", description="Memo copied to both ledger entries")
    initiated_by: int = Field(..., description="Customer ID of the initiator")

    @field_validator('amount')
    @classmethod
    def amount_is_finite(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("amount must be a finite number")
        return value

    @model_validator(mode='after')
    def distinct_accounts(self) -> 'TransferRequest':
        if self.from_account_number == self.to_account_number:
            raise ValueError("source and destination accounts must differ")
        return self


class TransferReceipt(BaseModel):
    """Echo of the transfer parameters, without balances"""
    model_config = ConfigDict(frozen=True)

    from_account_number: int
    to_account_number: int
    amount: Decimal
    reason: str
    initiated_by: int


class ApprovalRequest(BaseModel):
    account_number: int
    approved: Union[bool, str] = Field(..., description="yes/no or a boolean")
    approver_id: int

    @property
    def decision(self) -> bool:
        """Strings other than a case-insensitive 'yes' mean no"""
        if isinstance(self.approved, bool):
            return self.approved
        return self.approved.strip().lower() == "yes"


class ApprovalResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_number: int
    approved: str  # "yes" or "no"


class AddBeneficiaryRequest(BaseModel):
    customer_id: int = Field(..., gt=0)
    account_number: int = Field(..., gt=0, description="Target account")


class BeneficiaryView(BaseModel):
    model_config = ConfigDict(frozen=True)

    beneficiary_id: int
    customer_id: int
    account_number: int
    added_date: date
    approved: bool
    active: str


class TransactionView(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    date: datetime
    amount: Decimal
    reference: str
    transaction_type: str
    initiated_by: int


class AccountSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_number: int
    account_type: str
    balance: Decimal
    status: str


class AccountDetails(AccountSummary):
    customer_id: int
    approved: bool
    approved_by: Optional[int] = None
    created_at: datetime
    transactions: List[TransactionView] = Field(default_factory=list)
