"""
Beneficiary Registry

Per-customer set of accounts the customer may address as transfer targets.
At most one entry per target account number. Transfers do not consult this
registry; it is maintained only when a customer adds or removes a target.
"""

from datetime import date
from typing import Optional, Tuple

from pydantic import ValidationError

from .accounts import AccountStore
from .customers import CustomerStore, Beneficiary, BeneficiaryStatus
from .audit import AuditTrail, AuditEventType
from .locking import LockRegistry
from .schemas import AddBeneficiaryRequest
from .errors import DuplicateBeneficiary, NotFound, InvalidRequest
from .logging_config import get_logger, log_action


class BeneficiaryRegistry:
    """Adds, lists and removes a customer's beneficiaries"""

    def __init__(
        self,
        customer_store: CustomerStore,
        account_store: AccountStore,
        customer_locks: LockRegistry,
        audit_trail: Optional[AuditTrail] = None
    ):
        self.customer_store = customer_store
        self.account_store = account_store
        self.customer_locks = customer_locks
        self.audit_trail = audit_trail
        self.logger = get_logger("bank_ledger.beneficiaries")

    def add(self, customer_id: int, account_number: int) -> Beneficiary:
        """
        Register a target account for a customer

        Args:
            customer_id: Owning customer
            account_number: Target account

        Returns:
            The beneficiary as stored, carrying its assigned ID

        Raises:
            InvalidRequest: Identifiers are not positive integers
            NotFound: Unknown customer or target account
            DuplicateBeneficiary: Target already registered for this customer
        """
        try:
            request = AddBeneficiaryRequest(customer_id=customer_id, account_number=account_number)
        except ValidationError as e:
            problems = "; ".join(error['msg'] for error in e.errors())
            raise InvalidRequest(f"Invalid beneficiary request: {problems}", account_number) from e

        with self.customer_locks.hold(request.customer_id):
            with self.customer_store.transaction():
                customer = self.customer_store.find_customer(request.customer_id)
                target = self.account_store.find_account(request.account_number)

                if customer.has_beneficiary_for(target.account_number):
                    log_action(
                        self.logger, "warning", "Duplicate beneficiary rejected",
                        user_id=customer_id, action="add_beneficiary",
                        resource=f"account:{account_number}"
                    )
                    raise DuplicateBeneficiary(
                        f"Beneficiary with account number: {account_number} already added",
                        account_number
                    )

                customer.beneficiaries[target.account_number] = Beneficiary(
                    account_number=target.account_number,
                    customer_id=customer.customer_id,
                    added_date=date.today(),
                    approved=False,
                    active=BeneficiaryStatus.YES
                )
                updated = self.customer_store.persist_customer(customer)

                added = updated.beneficiaries.get(target.account_number)
                if added is None:
                    raise NotFound("Beneficiary", account_number, field="account number")

                if self.audit_trail:
                    self.audit_trail.log_event(
                        event_type=AuditEventType.BENEFICIARY_ADDED,
                        entity_type="customer",
                        entity_id=customer.customer_id,
                        metadata={
                            "beneficiary_id": added.beneficiary_id,
                            "account_number": added.account_number
                        },
                        user_id=customer.customer_id
                    )

        log_action(
            self.logger, "info", f"Beneficiary {added.beneficiary_id} added",
            user_id=customer_id, action="add_beneficiary",
            resource=f"account:{account_number}"
        )
        return added

    def list(self, customer_id: int) -> Tuple[Beneficiary, ...]:
        """
        All beneficiaries of a customer

        Raises:
            NotFound: Unknown customer
        """
        customer = self.customer_store.find_customer(customer_id)
        return tuple(customer.beneficiaries.values())

    def remove(self, customer_id: int, beneficiary_id: int) -> bool:
        """
        Remove a beneficiary by ID

        Returns:
            True if removed, False if the customer has no such beneficiary

        Raises:
            NotFound: Unknown customer
        """
        with self.customer_locks.hold(customer_id):
            with self.customer_store.transaction():
                customer = self.customer_store.find_customer(customer_id)
                beneficiary = customer.find_beneficiary(beneficiary_id)

                if beneficiary is None:
                    log_action(
                        self.logger, "warning", "Unable to remove beneficiary",
                        user_id=customer_id, action="remove_beneficiary",
                        resource=f"beneficiary:{beneficiary_id}"
                    )
                    return False

                del customer.beneficiaries[beneficiary.account_number]
                self.customer_store.persist_customer(customer)

                if self.audit_trail:
                    self.audit_trail.log_event(
                        event_type=AuditEventType.BENEFICIARY_REMOVED,
                        entity_type="customer",
                        entity_id=customer.customer_id,
                        metadata={
                            "beneficiary_id": beneficiary_id,
                            "account_number": beneficiary.account_number
                        },
                        user_id=customer.customer_id
                    )

        log_action(
            self.logger, "info", f"Beneficiary {beneficiary_id} removed",
            user_id=customer_id, action="remove_beneficiary",
            resource=f"beneficiary:{beneficiary_id}"
        )
        return True
