"""
Back Office Service

Composition root for the ledger core. Wires storage, stores, lock
registries, the audit trail and the three workflows together through
explicit constructor parameters, and exposes the operations callers use.
Transports (HTTP, CLI, queues) sit on top of this class.
"""

from decimal import Decimal
from typing import Iterable, List, Optional, Union

from .config import LedgerConfig, get_config
from .storage import StorageInterface, create_storage
from .audit import AuditTrail
from .locking import LockRegistry
from .accounts import AccountStore, Account, AccountType
from .customers import CustomerStore, Customer, UserRole, Beneficiary
from .transfers import LedgerEngine
from .approvals import ApprovalWorkflow
from .beneficiaries import BeneficiaryRegistry
from .money import AmountLike, to_decimal
from .schemas import (
    TransferReceipt, ApprovalResult, BeneficiaryView, AccountSummary,
    AccountDetails, TransactionView
)
from .logging_config import setup_logging


class BackOffice:
    """Ledger core with all components initialized"""

    def __init__(self, storage: StorageInterface, config: Optional[LedgerConfig] = None):
        self.config = config or get_config()
        self.storage = storage

        self.audit_trail = AuditTrail(storage) if self.config.enable_audit_logging else None
        self.account_locks = LockRegistry("accounts")
        self.customer_locks = LockRegistry("customers")

        self.customer_store = CustomerStore(storage, self.audit_trail)
        self.account_store = AccountStore(
            storage, self.customer_store, self.audit_trail,
            amount_precision=self.config.amount_precision,
            max_opening_balance=to_decimal(self.config.max_opening_balance)
        )
        self.ledger_engine = LedgerEngine(
            self.account_store, self.customer_store, self.account_locks,
            self.audit_trail, amount_precision=self.config.amount_precision
        )
        self.approval_workflow = ApprovalWorkflow(
            self.account_store, self.customer_store, self.account_locks, self.audit_trail
        )
        self.beneficiary_registry = BeneficiaryRegistry(
            self.customer_store, self.account_store, self.customer_locks, self.audit_trail
        )

    @classmethod
    def from_config(cls, config: Optional[LedgerConfig] = None) -> 'BackOffice':
        """Build storage and logging from configuration"""
        config = config or get_config()
        setup_logging(config.log_level, config.log_format)
        storage = create_storage(config.database_url, config.sqlite_timeout_seconds)
        return cls(storage, config)

    def close(self) -> None:
        self.storage.close()

    # Customers

    def register_customer(self, username: str, fullname: str,
                          roles: Optional[Iterable[UserRole]] = None) -> Customer:
        return self.customer_store.register_customer(username, fullname, roles)

    def find_customer(self, customer_id: int) -> Customer:
        return self.customer_store.find_customer(customer_id)

    def find_customer_by_username(self, username: str) -> Customer:
        return self.customer_store.find_customer_by_username(username)

    # Accounts

    def open_account(self, customer_id: int, account_type: AccountType = AccountType.SAVINGS,
                     opening_balance: AmountLike = Decimal('0'),
                     account_number: Optional[int] = None) -> Account:
        return self.account_store.open_account(customer_id, account_type, opening_balance, account_number)

    def list_customer_accounts(self, customer_id: int) -> List[AccountSummary]:
        return [self._summary(account) for account in self.account_store.get_customer_accounts(customer_id)]

    def get_customer_account(self, customer_id: int, account_number: int) -> AccountDetails:
        return self._details(self.account_store.get_customer_account(customer_id, account_number))

    def approve_account(self, account_number: int, decision: Union[bool, str],
                        approver_id: int) -> ApprovalResult:
        return self.approval_workflow.approve_account(account_number, decision, approver_id)

    # Money movement

    def transfer(self, from_account_number: int, to_account_number: int, amount: AmountLike,
                 reason: str, initiated_by: int) -> TransferReceipt:
        return self.ledger_engine.transfer(
            from_account_number, to_account_number, amount, reason, initiated_by
        )

    # Beneficiaries

    def add_beneficiary(self, customer_id: int, account_number: int) -> BeneficiaryView:
        return self._beneficiary_view(self.beneficiary_registry.add(customer_id, account_number))

    def list_beneficiaries(self, customer_id: int) -> List[BeneficiaryView]:
        return [self._beneficiary_view(b) for b in self.beneficiary_registry.list(customer_id)]

    def remove_beneficiary(self, customer_id: int, beneficiary_id: int) -> bool:
        return self.beneficiary_registry.remove(customer_id, beneficiary_id)

    # Audit

    def verify_audit_trail(self) -> dict:
        if not self.audit_trail:
            return {'valid': True, 'total_events': 0, 'hash_errors': [], 'chain_breaks': []}
        return self.audit_trail.verify_integrity()

    @staticmethod
    def _summary(account: Account) -> AccountSummary:
        return AccountSummary(
            account_number=account.account_number,
            account_type=account.account_type.value,
            balance=account.balance,
            status=account.status.value
        )

    @staticmethod
    def _details(account: Account) -> AccountDetails:
        return AccountDetails(
            account_number=account.account_number,
            account_type=account.account_type.value,
            balance=account.balance,
            status=account.status.value,
            customer_id=account.customer_id,
            approved=account.approved,
            approved_by=account.approved_by,
            created_at=account.created_at,
            transactions=[
                TransactionView(
                    id=entry.id,
                    date=entry.date,
                    amount=entry.amount,
                    reference=entry.reference,
                    transaction_type=entry.transaction_type.value,
                    initiated_by=entry.initiated_by
                )
                for entry in account.transactions
            ]
        )

    @staticmethod
    def _beneficiary_view(beneficiary: Beneficiary) -> BeneficiaryView:
        return BeneficiaryView(
            beneficiary_id=beneficiary.beneficiary_id,
            customer_id=beneficiary.customer_id,
            account_number=beneficiary.account_number,
            added_date=beneficiary.added_date,
            approved=beneficiary.approved,
            active=beneficiary.active.value
        )
