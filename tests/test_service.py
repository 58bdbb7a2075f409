"""
Integration tests for the back office service

Runs the full customer -> account -> approval -> transfer -> beneficiary
flow through the composed service on SQLite and in-memory storage.
"""

import pytest
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

from bank_ledger.config import LedgerConfig
from bank_ledger.service import BackOffice
from bank_ledger.storage import InMemoryStorage, SQLiteStorage
from bank_ledger.customers import UserRole
from bank_ledger.accounts import AccountType
from bank_ledger.errors import (
    NotFound, TransferNotPermitted, InsufficientFunds, DuplicateBeneficiary, LedgerError
)


class TestBackOfficeIntegration:
    """End-to-end flow against a file-backed database"""

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_path = Path(self.temp_dir.name) / "ledger.db"
        self.config = LedgerConfig(
            _env_file=None,
            database_url=f"sqlite:///{db_path}",
            log_level="WARNING"
        )
        self.back_office = BackOffice.from_config(self.config)

        self.staff = self.back_office.register_customer("teller", "Bank Teller", roles=[UserRole.STAFF])
        self.alice = self.back_office.register_customer("alice", "Alice Smith")
        self.bob = self.back_office.register_customer("bob", "Bob Jones")

    def teardown_method(self):
        self.back_office.close()
        self.temp_dir.cleanup()

    def test_backend_selected_from_config(self):
        assert isinstance(self.back_office.storage, SQLiteStorage)

    def test_full_transfer_flow(self):
        source = self.back_office.open_account(
            self.alice.customer_id, AccountType.SAVINGS, "500.00", account_number=100
        )
        target = self.back_office.open_account(
            self.bob.customer_id, AccountType.CHECKING, "0.00", account_number=200
        )
        assert source.is_pending and target.is_pending

        with pytest.raises(TransferNotPermitted):
            self.back_office.transfer(100, 200, "200.00", "rent", self.alice.customer_id)

        self.back_office.approve_account(100, "yes", self.staff.customer_id)
        self.back_office.approve_account(200, "YES", self.staff.customer_id)

        receipt = self.back_office.transfer(100, 200, "200.00", "rent", self.alice.customer_id)
        assert receipt.amount == Decimal("200.00")

        with pytest.raises(InsufficientFunds):
            self.back_office.transfer(100, 200, "1000.00", "too much", self.alice.customer_id)

        details = self.back_office.get_customer_account(self.alice.customer_id, 100)
        assert details.balance == Decimal("300.00")
        assert details.status == "ENABLED"
        assert details.approved is True
        assert details.approved_by == self.staff.customer_id
        assert [t.transaction_type for t in details.transactions] == ["DEBIT"]
        assert details.transactions[0].amount == Decimal("-200.00")

        bob_details = self.back_office.get_customer_account(self.bob.customer_id, 200)
        assert [t.transaction_type for t in bob_details.transactions] == ["CREDIT"]
        assert bob_details.transactions[0].reference == "rent"

        audit = self.back_office.verify_audit_trail()
        assert audit['valid'] is True
        assert audit['total_events'] > 0

    def test_list_customer_accounts(self):
        self.back_office.open_account(self.alice.customer_id, AccountType.CHECKING, account_number=110)
        self.back_office.open_account(self.alice.customer_id, AccountType.SAVINGS, "25.50", account_number=101)

        summaries = self.back_office.list_customer_accounts(self.alice.customer_id)

        assert [s.account_number for s in summaries] == [101, 110]
        assert summaries[0].account_type == "SB"
        assert summaries[0].balance == Decimal("25.50")
        assert summaries[0].status == "DISABLED"
        assert summaries[1].account_type == "CA"

        with pytest.raises(NotFound):
            self.back_office.get_customer_account(self.bob.customer_id, 101)

    def test_beneficiary_flow(self):
        self.back_office.open_account(self.bob.customer_id, AccountType.SAVINGS, account_number=200)

        view = self.back_office.add_beneficiary(self.alice.customer_id, 200)
        assert view.account_number == 200
        assert view.added_date == date.today()
        assert view.approved is False
        assert view.active == "YES"

        with pytest.raises(DuplicateBeneficiary):
            self.back_office.add_beneficiary(self.alice.customer_id, 200)

        listed = self.back_office.list_beneficiaries(self.alice.customer_id)
        assert [b.beneficiary_id for b in listed] == [view.beneficiary_id]

        assert self.back_office.remove_beneficiary(self.alice.customer_id, view.beneficiary_id)
        assert not self.back_office.remove_beneficiary(self.alice.customer_id, view.beneficiary_id)
        assert self.back_office.list_beneficiaries(self.alice.customer_id) == []

    def test_customer_lookups(self):
        assert self.back_office.find_customer_by_username("alice").customer_id == self.alice.customer_id
        with pytest.raises(NotFound) as exc_info:
            self.back_office.find_customer(999)
        assert exc_info.value.to_dict() == {
            "code": "NOT_FOUND",
            "message": "Customer with ID: 999 not found",
            "identifier": "999"
        }

    def test_state_survives_restart(self):
        self.back_office.open_account(self.alice.customer_id, AccountType.SAVINGS, "75.00", account_number=100)
        self.back_office.close()

        self.back_office = BackOffice.from_config(self.config)
        account = self.back_office.get_customer_account(self.alice.customer_id, 100)
        assert account.balance == Decimal("75.00")
        assert self.back_office.verify_audit_trail()['valid']


class TestBackOfficeOptions:

    def test_audit_logging_disabled(self):
        config = LedgerConfig(_env_file=None, enable_audit_logging=False)
        back_office = BackOffice(InMemoryStorage(), config)

        customer = back_office.register_customer("alice", "Alice")
        back_office.open_account(customer.customer_id, AccountType.SAVINGS, account_number=100)

        assert back_office.audit_trail is None
        assert back_office.verify_audit_trail() == {
            'valid': True, 'total_events': 0, 'hash_errors': [], 'chain_breaks': []
        }

    def test_opening_balance_limit_from_config(self):
        config = LedgerConfig(_env_file=None, max_opening_balance="100.00")
        back_office = BackOffice(InMemoryStorage(), config)
        customer = back_office.register_customer("alice", "Alice")

        with pytest.raises(LedgerError) as exc_info:
            back_office.open_account(customer.customer_id, AccountType.SAVINGS, "100.01")
        assert exc_info.value.code == "INVALID_AMOUNT"
