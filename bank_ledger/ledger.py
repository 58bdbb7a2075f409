"""
Ledger Entries

Immutable, append-only records of one signed balance movement on one account.
A transfer is recorded as a matched pair of entries (double entry): a DEBIT
on the source account and a CREDIT on the destination account with amounts
that are exact negatives of each other.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Any, Dict, Tuple
from enum import Enum
import uuid


class TransactionType(Enum):
    """Side of a transfer an entry records"""
    DEBIT = "DEBIT"    # Money left the account, amount is negative
    CREDIT = "CREDIT"  # Money entered the account, amount is positive


@dataclass(frozen=True)
class Transaction:
    """
    One ledger entry, owned by exactly one account

    Frozen: entries are never mutated after creation.
    """
    id: str
    account_number: int
    date: datetime
    amount: Decimal  # Signed
    reference: str
    transaction_type: TransactionType
    initiated_by: int  # Customer ID of the initiator
    transfer_id: str   # Shared by both legs of one transfer

    def __post_init__(self):
        if self.amount == Decimal('0'):
            raise ValueError("Ledger entry amount cannot be zero")
        if self.transaction_type == TransactionType.DEBIT and self.amount > 0:
            raise ValueError("DEBIT entries must carry a negative amount")
        if self.transaction_type == TransactionType.CREDIT and self.amount < 0:
            raise ValueError("CREDIT entries must carry a positive amount")

    @property
    def is_debit(self) -> bool:
        return self.transaction_type == TransactionType.DEBIT

    @property
    def is_credit(self) -> bool:
        return self.transaction_type == TransactionType.CREDIT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            'id': self.id,
            'account_number': self.account_number,
            'date': self.date.isoformat(),
            'amount': str(self.amount),
            'reference': self.reference,
            'transaction_type': self.transaction_type.value,
            'initiated_by': self.initiated_by,
            'transfer_id': self.transfer_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=data['id'],
            account_number=data['account_number'],
            date=datetime.fromisoformat(data['date']),
            amount=Decimal(data['amount']),
            reference=data['reference'],
            transaction_type=TransactionType(data['transaction_type']),
            initiated_by=data['initiated_by'],
            transfer_id=data['transfer_id']
        )


def make_transfer_entries(
    from_account_number: int,
    to_account_number: int,
    amount: Decimal,
    reference: str,
    initiated_by: int,
    when: datetime
) -> Tuple[Transaction, Transaction]:
    """
    Build the matched debit/credit pair for one transfer

    Args:
        from_account_number: Account being debited
        to_account_number: Account being credited
        amount: Positive transfer amount
        reference: Free-text memo copied to both legs
        initiated_by: Customer ID of the initiator
        when: Timestamp shared by both legs

    Returns:
        (debit_entry, credit_entry)
    """
    if amount <= Decimal('0'):
        raise ValueError("Transfer amount must be positive")

    transfer_id = str(uuid.uuid4())

    debit = Transaction(
        id=str(uuid.uuid4()),
        account_number=from_account_number,
        date=when,
        amount=-amount,
        reference=reference,
        transaction_type=TransactionType.DEBIT,
        initiated_by=initiated_by,
        transfer_id=transfer_id
    )
    credit = Transaction(
        id=str(uuid.uuid4()),
        account_number=to_account_number,
        date=when,
        amount=amount,
        reference=reference,
        transaction_type=TransactionType.CREDIT,
        initiated_by=initiated_by,
        transfer_id=transfer_id
    )
    return debit, credit
