"""
Account Approval Workflow

Staff decisions that move an account between Pending (approved=False,
status=DISABLED) and Approved (approved=True, status=ENABLED). Only approved
accounts may take part in a transfer. There is no terminal state: a later
"no" returns an approved account to Pending.
"""

from typing import Optional, Union

from pydantic import ValidationError

from .accounts import AccountStore
from .customers import CustomerStore
from .audit import AuditTrail, AuditEventType
from .locking import LockRegistry
from .schemas import ApprovalRequest, ApprovalResult
from .errors import ApprovalNotPermitted, InvalidRequest
from .logging_config import get_logger, log_action


class ApprovalWorkflow:
    """Applies staff approval decisions to accounts"""

    def __init__(
        self,
        account_store: AccountStore,
        customer_store: CustomerStore,
        account_locks: LockRegistry,
        audit_trail: Optional[AuditTrail] = None
    ):
        self.account_store = account_store
        self.customer_store = customer_store
        self.account_locks = account_locks
        self.audit_trail = audit_trail
        self.logger = get_logger("bank_ledger.approvals")

    def approve_account(
        self,
        account_number: int,
        decision: Union[bool, str],
        approver_id: int
    ) -> ApprovalResult:
        """
        Record a staff approval decision on an account

        Args:
            account_number: Account to approve or disapprove
            decision: True/False, or "yes" (case-insensitive); anything else is no
            approver_id: Customer ID of the acting staff member

        Returns:
            ApprovalResult with the account number and "yes"/"no"

        Raises:
            InvalidRequest: Decision or identifiers have the wrong shape
            NotFound: Unknown account or approver
            ApprovalNotPermitted: Approver does not hold the staff role
        """
        try:
            request = ApprovalRequest(
                account_number=account_number, approved=decision, approver_id=approver_id
            )
        except ValidationError as e:
            problems = "; ".join(error['msg'] for error in e.errors())
            raise InvalidRequest(f"Invalid approval request: {problems}", account_number) from e

        with self.account_locks.hold(request.account_number):
            with self.account_store.transaction():
                account = self.account_store.find_account(request.account_number)
                approver = self.customer_store.find_customer(request.approver_id)

                if not approver.is_staff:
                    log_action(
                        self.logger, "warning", "Approval attempted without staff role",
                        user_id=approver.customer_id, action="approve_account",
                        resource=f"account:{account.account_number}"
                    )
                    raise ApprovalNotPermitted(
                        f"Customer with ID: {approver.customer_id} is not allowed to approve accounts",
                        approver.customer_id
                    )

                previous = account.approved
                account.set_approval(request.decision, approver.customer_id)
                self.account_store.persist_accounts([account])

                if self.audit_trail:
                    self.audit_trail.log_event(
                        event_type=(AuditEventType.ACCOUNT_APPROVED if account.approved
                                    else AuditEventType.ACCOUNT_DISAPPROVED),
                        entity_type="account",
                        entity_id=account.account_number,
                        metadata={
                            "previously_approved": previous,
                            "approved": account.approved,
                            "status": account.status
                        },
                        user_id=approver.customer_id
                    )

        result = ApprovalResult(
            account_number=account.account_number,
            approved="yes" if account.approved else "no"
        )

        log_action(
            self.logger, "info", f"Account {account.account_number} decision: {result.approved}",
            user_id=approver.customer_id, action="approve_account",
            resource=f"account:{account.account_number}"
        )
        return result
