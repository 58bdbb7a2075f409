"""
Transfer Processing Module

The ledger engine: moves money between two accounts. All validation happens
before any mutation; the read of both balances, the funds check and the write
of both balances plus both ledger entries run as one unit under the two
account locks and inside one storage transaction.
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from .accounts import AccountStore
from .customers import CustomerStore
from .audit import AuditTrail, AuditEventType
from .ledger import make_transfer_entries
from .locking import LockRegistry
from .money import AmountLike, to_decimal, quantize_amount
from .schemas import TransferRequest, TransferReceipt
from .errors import (
    InvalidAmount, InvalidTransfer, TransferNotPermitted, InsufficientFunds, StorageError
)
from .logging_config import get_logger, log_action


class LedgerEngine:
    """
    Validates and executes transfers between approved accounts
    """

    def __init__(
        self,
        account_store: AccountStore,
        customer_store: CustomerStore,
        account_locks: LockRegistry,
        audit_trail: Optional[AuditTrail] = None,
        amount_precision: int = 2
    ):
        self.account_store = account_store
        self.customer_store = customer_store
        self.account_locks = account_locks
        self.audit_trail = audit_trail
        self.amount_precision = amount_precision
        self.logger = get_logger("bank_ledger.transfers")

    def transfer(
        self,
        from_account_number: int,
        to_account_number: int,
        amount: AmountLike,
        reason: str,
        initiated_by: int
    ) -> TransferReceipt:
        """
        Transfer funds from one account to another

        Args:
            from_account_number: Account to debit
            to_account_number: Account to credit
            amount: Positive amount
            reason: Memo recorded on both ledger entries
            initiated_by: Customer ID of the initiator

        Returns:
            TransferReceipt echoing the request

        Raises:
            InvalidTransfer: Non-positive amount, excess precision or self-transfer
            NotFound: Either account or the initiator does not exist
            TransferNotPermitted: Either account is not approved
            InsufficientFunds: Source balance would go negative
            StorageError: Persisting the two accounts failed; nothing was written
        """
        request = self._validate(from_account_number, to_account_number, amount, reason, initiated_by)

        with self.account_locks.hold(request.from_account_number, request.to_account_number):
            with self.account_store.transaction():
                from_account = self.account_store.find_account(request.from_account_number)
                to_account = self.account_store.find_account(request.to_account_number)
                initiator = self.customer_store.find_customer(request.initiated_by)

                if not (from_account.approved and to_account.approved):
                    self._reject(request, "not_approved")
                    raise TransferNotPermitted(
                        "Both accounts must be approved to perform a transfer.",
                        request.from_account_number if not from_account.approved
                        else request.to_account_number
                    )

                if from_account.balance - request.amount < Decimal('0'):
                    self._reject(request, "insufficient_funds")
                    raise InsufficientFunds(
                        f"Account number: {request.from_account_number} does not have "
                        f"sufficient funds to process transfer",
                        request.from_account_number
                    )

                now = datetime.now(timezone.utc)
                debit, credit = make_transfer_entries(
                    from_account_number=from_account.account_number,
                    to_account_number=to_account.account_number,
                    amount=request.amount,
                    reference=request.reason,
                    initiated_by=initiator.customer_id,
                    when=now
                )
                from_account.post_entry(debit)
                to_account.post_entry(credit)

                try:
                    self.account_store.persist_accounts([from_account, to_account])

                    if self.audit_trail:
                        self.audit_trail.log_event(
                            event_type=AuditEventType.TRANSFER_POSTED,
                            entity_type="transfer",
                            entity_id=debit.transfer_id,
                            metadata={
                                "from_account": from_account.account_number,
                                "to_account": to_account.account_number,
                                "amount": request.amount,
                                "reason": request.reason,
                                "debit_entry": debit.id,
                                "credit_entry": credit.id
                            },
                            user_id=initiator.customer_id
                        )
                except StorageError:
                    log_action(
                        self.logger, "error", "Transfer could not be persisted",
                        user_id=request.initiated_by, action="transfer",
                        resource=f"account:{request.from_account_number}",
                        extra=self._describe(request), exc_info=True
                    )
                    raise

        log_action(
            self.logger, "info", "Transfer posted",
            user_id=request.initiated_by, action="transfer",
            resource=f"transfer:{debit.transfer_id}",
            extra=self._describe(request)
        )

        return TransferReceipt(
            from_account_number=request.from_account_number,
            to_account_number=request.to_account_number,
            amount=request.amount,
            reason=request.reason,
            initiated_by=request.initiated_by
        )

    def _validate(self, from_account_number, to_account_number, amount, reason, initiated_by) -> TransferRequest:
        """Shape checks that need no storage access"""
        try:
            value = to_decimal(amount)
            exact = value == quantize_amount(value, self.amount_precision)
        except InvalidAmount as e:
            raise InvalidTransfer(e.message, amount) from e

        if not exact:
            raise InvalidTransfer(
                f"Amount {value} has more than {self.amount_precision} decimal places", amount
            )

        try:
            return TransferRequest(
                from_account_number=from_account_number,
                to_account_number=to_account_number,
                amount=value,
                reason=reason or "",
                initiated_by=initiated_by
            )
        except ValidationError as e:
            problems = "; ".join(error['msg'] for error in e.errors())
            raise InvalidTransfer(f"Invalid transfer request: {problems}", from_account_number) from e

    def _reject(self, request: TransferRequest, reason: str) -> None:
        log_action(
            self.logger, "warning", f"Transfer rejected: {reason}",
            user_id=request.initiated_by, action="transfer",
            resource=f"account:{request.from_account_number}",
            extra=self._describe(request)
        )

    @staticmethod
    def _describe(request: TransferRequest) -> dict:
        return {
            "from_account": request.from_account_number,
            "to_account": request.to_account_number,
            "amount": str(request.amount),
            "reason": request.reason
        }
