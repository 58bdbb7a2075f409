"""
Test suite for ledger entries

Tests entry sign rules, immutability and the matched debit/credit pair
produced for a transfer.
"""

import pytest
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone
from decimal import Decimal

from bank_ledger.ledger import Transaction, TransactionType, make_transfer_entries


def make_entry(amount, transaction_type):
    return Transaction(
        id="TXN001",
        account_number=100,
        date=datetime.now(timezone.utc),
        amount=Decimal(amount),
        reference="rent",
        transaction_type=transaction_type,
        initiated_by=7,
        transfer_id="T1"
    )


class TestTransaction:
    """Test single ledger entry rules"""

    def test_valid_debit_and_credit(self):
        """Test entries with matching signs"""
        debit = make_entry("-25.00", TransactionType.DEBIT)
        credit = make_entry("25.00", TransactionType.CREDIT)

        assert debit.is_debit and not debit.is_credit
        assert credit.is_credit and not credit.is_debit

    def test_zero_amount_rejected(self):
        with pytest.raises(ValueError, match="cannot be zero"):
            make_entry("0", TransactionType.CREDIT)

    def test_sign_must_match_type(self):
        """Test debit must be negative and credit positive"""
        with pytest.raises(ValueError, match="DEBIT"):
            make_entry("25.00", TransactionType.DEBIT)
        with pytest.raises(ValueError, match="CREDIT"):
            make_entry("-25.00", TransactionType.CREDIT)

    def test_entries_are_immutable(self):
        entry = make_entry("10.00", TransactionType.CREDIT)
        with pytest.raises(FrozenInstanceError):
            entry.amount = Decimal("20.00")

    def test_dict_conversion_keeps_decimal_exact(self):
        entry = make_entry("-0.10", TransactionType.DEBIT)
        data = entry.to_dict()

        assert data['amount'] == "-0.10"
        assert data['transaction_type'] == "DEBIT"
        assert Transaction.from_dict(data) == entry


class TestTransferEntries:
    """Test the double-entry pair for one transfer"""

    def setup_method(self):
        self.when = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        self.debit, self.credit = make_transfer_entries(
            from_account_number=100,
            to_account_number=200,
            amount=Decimal("200.00"),
            reference="rent",
            initiated_by=7,
            when=self.when
        )

    def test_amounts_are_exact_negatives(self):
        assert self.debit.amount == Decimal("-200.00")
        assert self.credit.amount == Decimal("200.00")
        assert self.debit.amount + self.credit.amount == Decimal("0")

    def test_legs_are_tagged_debit_and_credit(self):
        assert self.debit.transaction_type == TransactionType.DEBIT
        assert self.credit.transaction_type == TransactionType.CREDIT

    def test_legs_share_metadata(self):
        """Test timestamp, memo, initiator and transfer id are shared"""
        assert self.debit.date == self.credit.date == self.when
        assert self.debit.reference == self.credit.reference == "rent"
        assert self.debit.initiated_by == self.credit.initiated_by == 7
        assert self.debit.transfer_id == self.credit.transfer_id
        assert self.debit.id != self.credit.id

    def test_legs_target_their_accounts(self):
        assert self.debit.account_number == 100
        assert self.credit.account_number == 200

    def test_non_positive_amount_rejected(self):
        for amount in (Decimal("0"), Decimal("-5.00")):
            with pytest.raises(ValueError):
                make_transfer_entries(100, 200, amount, "x", 7, self.when)
