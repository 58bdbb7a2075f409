"""
Customer Management Module

Customer records, roles and the per-customer beneficiary set, plus the
customer store contract used by the ledger core: lookup by ID or username
and persistence of the whole customer aggregate.
"""

from datetime import datetime, timezone, date
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Any, Iterable
from enum import Enum

from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .errors import NotFound, DuplicateUsername
from .logging_config import get_logger, log_action


class UserRole(Enum):
    CUSTOMER = "ROLE_CUSTOMER"
    STAFF = "ROLE_STAFF"


class CustomerStatus(Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class BeneficiaryStatus(Enum):
    YES = "YES"
    NO = "NO"


@dataclass
class Beneficiary:
    """
    Customer-scoped allow-list entry naming a target account

    ``beneficiary_id`` is None until the owning customer is persisted.
    """
    account_number: int
    customer_id: int
    added_date: date
    approved: bool = False
    active: BeneficiaryStatus = BeneficiaryStatus.YES
    beneficiary_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'beneficiary_id': self.beneficiary_id,
            'account_number': self.account_number,
            'customer_id': self.customer_id,
            'added_date': self.added_date.isoformat(),
            'approved': self.approved,
            'active': self.active.value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Beneficiary':
        return cls(
            beneficiary_id=data.get('beneficiary_id'),
            account_number=data['account_number'],
            customer_id=data['customer_id'],
            added_date=date.fromisoformat(data['added_date']),
            approved=data['approved'],
            active=BeneficiaryStatus(data['active'])
        )


@dataclass
class Customer(StorageRecord):
    """
    Customer profile

    Beneficiaries are keyed by target account number, which makes the
    one-entry-per-target rule a property of the container.
    """
    customer_id: int
    username: str
    fullname: str
    roles: Set[UserRole] = field(default_factory=lambda: {UserRole.CUSTOMER})
    status: CustomerStatus = CustomerStatus.ENABLED
    beneficiaries: Dict[int, Beneficiary] = field(default_factory=dict)

    @property
    def is_staff(self) -> bool:
        return UserRole.STAFF in self.roles

    def has_beneficiary_for(self, account_number: int) -> bool:
        return account_number in self.beneficiaries

    def find_beneficiary(self, beneficiary_id: int) -> Optional[Beneficiary]:
        for beneficiary in self.beneficiaries.values():
            if beneficiary.beneficiary_id == beneficiary_id:
                return beneficiary
        return None


class CustomerStore:
    """
    Durable customer lookup and update
    """

    def __init__(self, storage: StorageInterface, audit_trail: Optional[AuditTrail] = None):
        self.storage = storage
        self.audit_trail = audit_trail
        self.table_name = "customers"
        self.logger = get_logger("bank_ledger.customers")

    def register_customer(
        self,
        username: str,
        fullname: str,
        roles: Optional[Iterable[UserRole]] = None
    ) -> Customer:
        """
        Create a customer record

        Credential handling lives outside the ledger core; this only
        creates the record the core looks customers up by.

        Raises:
            DuplicateUsername: If the username is taken
        """
        with self.storage.atomic():
            if self.storage.find(self.table_name, {"username": username}):
                raise DuplicateUsername(f"Username: {username} already exists!", username)

            now = datetime.now(timezone.utc)
            customer_id = self.storage.next_sequence("customer_id")
            customer = Customer(
                id=str(customer_id),
                created_at=now,
                updated_at=now,
                customer_id=customer_id,
                username=username,
                fullname=fullname,
                roles=set(roles) if roles else {UserRole.CUSTOMER}
            )
            self._save_customer(customer)

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=AuditEventType.CUSTOMER_REGISTERED,
                    entity_type="customer",
                    entity_id=customer_id,
                    metadata={
                        "username": username,
                        "roles": sorted(role.value for role in customer.roles)
                    }
                )

        log_action(
            self.logger, "info", f"Customer registered: {username}",
            action="register_customer", resource=f"customer:{customer_id}"
        )
        return customer

    def find_customer(self, customer_id: int) -> Customer:
        """
        Get customer by ID

        Raises:
            NotFound: If no such customer exists
        """
        customer_dict = self.storage.load(self.table_name, str(customer_id))
        if not customer_dict:
            raise NotFound("Customer", customer_id)
        return self._customer_from_dict(customer_dict)

    def find_customer_by_username(self, username: str) -> Customer:
        """
        Get customer by username

        Raises:
            NotFound: If no such customer exists
        """
        customers = self.storage.find(self.table_name, {"username": username})
        if not customers:
            raise NotFound("Customer", username, field="username")
        return self._customer_from_dict(customers[0])

    def exists(self, customer_id: int) -> bool:
        return self.storage.exists(self.table_name, str(customer_id))

    def transaction(self):
        """One storage transaction spanning several reads and writes"""
        return self.storage.atomic()

    def persist_customer(self, customer: Customer) -> Customer:
        """
        Save the whole customer aggregate

        Beneficiaries without an ID are assigned one here.

        Returns:
            The customer as re-read from storage
        """
        with self.storage.atomic():
            for beneficiary in customer.beneficiaries.values():
                if beneficiary.beneficiary_id is None:
                    beneficiary.beneficiary_id = self.storage.next_sequence("beneficiary_id")
            customer.updated_at = datetime.now(timezone.utc)
            self._save_customer(customer)
            return self.find_customer(customer.customer_id)

    def list_customers(self) -> List[Customer]:
        return [self._customer_from_dict(data) for data in self.storage.load_all(self.table_name)]

    def _save_customer(self, customer: Customer) -> None:
        self.storage.save(self.table_name, customer.id, self._customer_to_dict(customer))

    def _customer_to_dict(self, customer: Customer) -> Dict[str, Any]:
        """Convert Customer to dictionary for storage"""
        result = customer.to_dict()
        result['roles'] = sorted(role.value for role in customer.roles)
        result['beneficiaries'] = [b.to_dict() for b in customer.beneficiaries.values()]
        return result

    def _customer_from_dict(self, data: Dict[str, Any]) -> Customer:
        """Convert dictionary to Customer"""
        beneficiaries = {}
        for item in data.get('beneficiaries', []):
            beneficiary = Beneficiary.from_dict(item)
            beneficiaries[beneficiary.account_number] = beneficiary

        return Customer(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            customer_id=data['customer_id'],
            username=data['username'],
            fullname=data['fullname'],
            roles={UserRole(value) for value in data['roles']},
            status=CustomerStatus(data['status']),
            beneficiaries=beneficiaries
        )
