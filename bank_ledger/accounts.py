"""
Account Management Module

Accounts, their approval state and their ledger entries, plus the account
store contract used by the ledger core: lookup by account number and
persistence of several accounts as one atomic unit.

The balance is the authoritative mutable field. Entries are appended through
``Account.post_entry`` only, which keeps ``opening_balance + sum(entries)``
equal to ``balance``.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from enum import Enum

from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .ledger import Transaction
from .customers import CustomerStore
from .money import AmountLike, to_decimal, quantize_amount
from .errors import NotFound, InvalidAmount, ConcurrentModification, DuplicateAccount
from .logging_config import get_logger, log_action


class AccountType(Enum):
    """Banking product types"""
    SAVINGS = "SB"
    CHECKING = "CA"


class AccountStatus(Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


@dataclass
class Account(StorageRecord):
    """
    Customer account

    ``version`` is bumped on every successful persist and compared on the
    next one to detect writers that raced us.
    """
    account_number: int
    customer_id: int
    account_type: AccountType
    balance: Decimal
    opening_balance: Decimal
    status: AccountStatus = AccountStatus.DISABLED
    approved: bool = False
    approved_by: Optional[int] = None
    transactions: List[Transaction] = field(default_factory=list)
    version: int = 0

    @property
    def is_pending(self) -> bool:
        return not self.approved

    def set_approval(self, approved: bool, approver_id: int) -> None:
        """Move between Pending and Approved; approval and status always agree"""
        self.approved = approved
        self.status = AccountStatus.ENABLED if approved else AccountStatus.DISABLED
        self.approved_by = approver_id
        self.updated_at = datetime.now(timezone.utc)

    def post_entry(self, entry: Transaction) -> None:
        """Append a ledger entry and apply its signed amount to the balance"""
        if entry.account_number != self.account_number:
            raise ValueError(
                f"Entry for account {entry.account_number} cannot be posted to {self.account_number}"
            )
        self.transactions.append(entry)
        self.balance = self.balance + entry.amount
        self.updated_at = entry.date

    def entries_total(self) -> Decimal:
        return sum((entry.amount for entry in self.transactions), Decimal('0'))

    def is_consistent(self) -> bool:
        """Balance equals opening balance plus all entries"""
        return self.opening_balance + self.entries_total() == self.balance


class AccountStore:
    """
    Durable account lookup and update
    """

    def __init__(
        self,
        storage: StorageInterface,
        customer_store: CustomerStore,
        audit_trail: Optional[AuditTrail] = None,
        amount_precision: int = 2,
        max_opening_balance: Optional[Decimal] = None
    ):
        self.storage = storage
        self.customer_store = customer_store
        self.audit_trail = audit_trail
        self.amount_precision = amount_precision
        self.max_opening_balance = max_opening_balance
        self.table_name = "accounts"
        self.logger = get_logger("bank_ledger.accounts")

    def transaction(self):
        """One storage transaction spanning several reads and writes"""
        return self.storage.atomic()

    def open_account(
        self,
        customer_id: int,
        account_type: AccountType,
        opening_balance: AmountLike = Decimal('0'),
        account_number: Optional[int] = None
    ) -> Account:
        """
        Open a new account in the Pending state

        Args:
            customer_id: Owning customer
            account_type: Product type
            opening_balance: Balance before any entry is recorded
            account_number: Explicit number; generated when omitted

        Returns:
            Created Account (approved=False, status=DISABLED)

        Raises:
            NotFound: If the customer does not exist
            InvalidAmount: If the opening balance is negative or too large
            DuplicateAccount: If an explicit account number is taken
        """
        balance = quantize_amount(to_decimal(opening_balance), self.amount_precision)
        if balance < Decimal('0'):
            raise InvalidAmount("Opening balance cannot be negative", opening_balance)
        if self.max_opening_balance is not None and balance > self.max_opening_balance:
            raise InvalidAmount(
                f"Opening balance exceeds limit of {self.max_opening_balance}", opening_balance
            )

        customer = self.customer_store.find_customer(customer_id)

        with self.storage.atomic():
            if account_number is None:
                account_number = self._generate_account_number()
            elif self.exists(account_number):
                raise DuplicateAccount(f"Account number: {account_number} already exists", account_number)

            now = datetime.now(timezone.utc)
            account = Account(
                id=str(account_number),
                created_at=now,
                updated_at=now,
                account_number=account_number,
                customer_id=customer.customer_id,
                account_type=account_type,
                balance=balance,
                opening_balance=balance
            )
            self._save_account(account)

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=AuditEventType.ACCOUNT_OPENED,
                    entity_type="account",
                    entity_id=account_number,
                    metadata={
                        "customer_id": customer.customer_id,
                        "account_type": account_type.value,
                        "opening_balance": balance
                    },
                    user_id=customer.customer_id
                )

        log_action(
            self.logger, "info", f"Account opened: {account_number}",
            user_id=customer.customer_id, action="open_account",
            resource=f"account:{account_number}",
            extra={"account_type": account_type.value, "opening_balance": str(balance)}
        )
        return account

    def find_account(self, account_number: int) -> Account:
        """
        Get account by account number

        Raises:
            NotFound: If no such account exists
        """
        account_dict = self.storage.load(self.table_name, str(account_number))
        if not account_dict:
            raise NotFound("Account", account_number, field="account number")
        return self._account_from_dict(account_dict)

    def exists(self, account_number: int) -> bool:
        return self.storage.exists(self.table_name, str(account_number))

    def persist_accounts(self, accounts: List[Account]) -> None:
        """
        Save several accounts as one all-or-nothing unit

        Every account's stored version must still match the version it was
        loaded with; otherwise nothing is written.

        Raises:
            ConcurrentModification: If any account changed since it was read
            StorageError: If the backend fails
        """
        with self.storage.atomic():
            for account in accounts:
                stored = self.storage.load(self.table_name, account.id)
                stored_version = stored['version'] if stored else 0
                if stored_version != account.version:
                    raise ConcurrentModification(
                        f"Account number: {account.account_number} was modified concurrently "
                        f"(expected version {account.version}, found {stored_version})",
                        account.account_number
                    )
            for account in accounts:
                account.version += 1
                self._save_account(account)

    def get_customer_accounts(self, customer_id: int) -> List[Account]:
        """
        All accounts owned by a customer

        Raises:
            NotFound: If the customer does not exist
        """
        if not self.customer_store.exists(customer_id):
            raise NotFound("Customer", customer_id)
        accounts_data = self.storage.find(self.table_name, {"customer_id": customer_id})
        accounts = [self._account_from_dict(data) for data in accounts_data]
        accounts.sort(key=lambda a: a.account_number)
        return accounts

    def get_customer_account(self, customer_id: int, account_number: int) -> Account:
        """
        One account, only if the customer owns it

        Raises:
            NotFound: If the customer does not exist or does not own the account
        """
        for account in self.get_customer_accounts(customer_id):
            if account.account_number == account_number:
                return account
        raise NotFound("Account", account_number)

    def _generate_account_number(self) -> int:
        """Next free number from the account sequence"""
        while True:
            candidate = self.storage.next_sequence("account_number")
            if not self.exists(candidate):
                return candidate

    def _save_account(self, account: Account) -> None:
        """Save account to storage"""
        self.storage.save(self.table_name, account.id, self._account_to_dict(account))

    def _account_to_dict(self, account: Account) -> Dict[str, Any]:
        """Convert Account to dictionary for storage"""
        result = account.to_dict()
        result['transactions'] = [entry.to_dict() for entry in account.transactions]
        return result

    def _account_from_dict(self, data: Dict[str, Any]) -> Account:
        """Convert dictionary to Account"""
        return Account(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            account_number=data['account_number'],
            customer_id=data['customer_id'],
            account_type=AccountType(data['account_type']),
            balance=Decimal(data['balance']),
            opening_balance=Decimal(data['opening_balance']),
            status=AccountStatus(data['status']),
            approved=data['approved'],
            approved_by=data.get('approved_by'),
            transactions=[Transaction.from_dict(item) for item in data.get('transactions', [])],
            version=data.get('version', 0)
        )
