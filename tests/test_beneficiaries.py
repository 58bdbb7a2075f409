"""
Test suite for the beneficiary registry
"""

import pytest
from datetime import date

from bank_ledger.storage import InMemoryStorage
from bank_ledger.audit import AuditTrail, AuditEventType
from bank_ledger.customers import CustomerStore, BeneficiaryStatus
from bank_ledger.accounts import AccountStore, AccountType
from bank_ledger.locking import LockRegistry
from bank_ledger.beneficiaries import BeneficiaryRegistry
from bank_ledger.errors import DuplicateBeneficiary, NotFound, InvalidRequest


class TestBeneficiaryRegistry:
    """Test adding, listing and removing beneficiaries"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemoryStorage()
        self.audit_trail = AuditTrail(self.storage)
        self.customer_store = CustomerStore(self.storage, self.audit_trail)
        self.account_store = AccountStore(self.storage, self.customer_store, self.audit_trail)
        self.registry = BeneficiaryRegistry(
            self.customer_store, self.account_store, LockRegistry("customers"), self.audit_trail
        )

        self.customer = self.customer_store.register_customer("jdoe", "John Doe")
        self.payee = self.customer_store.register_customer("payee", "Payee")
        self.account_store.open_account(self.payee.customer_id, AccountType.SAVINGS, account_number=200)
        self.account_store.open_account(self.payee.customer_id, AccountType.CHECKING, account_number=300)

    def test_add_beneficiary(self):
        beneficiary = self.registry.add(self.customer.customer_id, 200)

        assert beneficiary.beneficiary_id is not None
        assert beneficiary.account_number == 200
        assert beneficiary.customer_id == self.customer.customer_id
        assert beneficiary.added_date == date.today()
        assert beneficiary.approved is False
        assert beneficiary.active == BeneficiaryStatus.YES

    def test_duplicate_beneficiary(self):
        self.registry.add(self.customer.customer_id, 200)

        with pytest.raises(DuplicateBeneficiary) as exc_info:
            self.registry.add(self.customer.customer_id, 200)

        assert "200" in exc_info.value.message
        assert len(self.registry.list(self.customer.customer_id)) == 1

    def test_same_target_for_different_customers(self):
        self.registry.add(self.customer.customer_id, 300)
        self.registry.add(self.payee.customer_id, 300)

        assert len(self.registry.list(self.customer.customer_id)) == 1
        assert len(self.registry.list(self.payee.customer_id)) == 1

    def test_add_unknown_customer_or_account(self):
        with pytest.raises(NotFound):
            self.registry.add(999, 200)
        with pytest.raises(NotFound):
            self.registry.add(self.customer.customer_id, 999)
        assert self.registry.list(self.customer.customer_id) == ()

    def test_list_beneficiaries(self):
        first = self.registry.add(self.customer.customer_id, 200)
        second = self.registry.add(self.customer.customer_id, 300)

        listed = self.registry.list(self.customer.customer_id)
        assert {b.beneficiary_id for b in listed} == {first.beneficiary_id, second.beneficiary_id}

        with pytest.raises(NotFound):
            self.registry.list(999)

    def test_remove_beneficiary(self):
        beneficiary = self.registry.add(self.customer.customer_id, 200)

        assert self.registry.remove(self.customer.customer_id, beneficiary.beneficiary_id) is True
        assert self.registry.list(self.customer.customer_id) == ()

        # Target can be registered again after removal
        again = self.registry.add(self.customer.customer_id, 200)
        assert again.beneficiary_id != beneficiary.beneficiary_id

    def test_remove_missing_beneficiary(self):
        assert self.registry.remove(self.customer.customer_id, 12345) is False

    def test_remove_other_customers_beneficiary(self):
        beneficiary = self.registry.add(self.payee.customer_id, 200)

        assert self.registry.remove(self.customer.customer_id, beneficiary.beneficiary_id) is False
        assert len(self.registry.list(self.payee.customer_id)) == 1

    def test_changes_are_audited(self):
        beneficiary = self.registry.add(self.customer.customer_id, 200)
        self.registry.remove(self.customer.customer_id, beneficiary.beneficiary_id)

        added = self.audit_trail.get_events_by_type(AuditEventType.BENEFICIARY_ADDED)
        removed = self.audit_trail.get_events_by_type(AuditEventType.BENEFICIARY_REMOVED)
        assert len(added) == 1 and len(removed) == 1
        assert removed[0].metadata["beneficiary_id"] == beneficiary.beneficiary_id

    def test_malformed_identifiers_rejected(self):
        for customer_id, account_number in ((self.customer.customer_id, "abc"),
                                            (self.customer.customer_id, 0),
                                            (-1, 200)):
            with pytest.raises(InvalidRequest) as exc_info:
                self.registry.add(customer_id, account_number)
            assert exc_info.value.code == "INVALID_REQUEST"

        assert self.registry.list(self.customer.customer_id) == ()
