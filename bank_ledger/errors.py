"""
Ledger Exceptions

Domain-specific errors for the ledger core. Every failure kind carries a
stable ``code`` and the identifier it concerns so callers can map it to a
user-visible signal without parsing messages.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base class for all ledger core errors"""

    code = "LEDGER_ERROR"

    def __init__(self, message: str, identifier: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.identifier = identifier

    def to_dict(self) -> dict:
        """Serializable form for transports and logs"""
        return {
            "code": self.code,
            "message": self.message,
            "identifier": None if self.identifier is None else str(self.identifier)
        }


class NotFound(LedgerError):
    """Lookup of an account, customer, username or beneficiary failed"""

    code = "NOT_FOUND"

    def __init__(self, entity: str, identifier: Any, field: str = "ID"):
        super().__init__(f"{entity} with {field}: {identifier} not found", identifier)
        self.entity = entity


class InvalidAmount(LedgerError):
    """Amount is not a valid decimal or falls outside business rules"""

    code = "INVALID_AMOUNT"


class InvalidTransfer(LedgerError):
    """Transfer request is malformed (non-positive amount, self-transfer)"""

    code = "INVALID_TRANSFER"


class InvalidRequest(LedgerError):
    """Approval or beneficiary request fails shape validation"""

    code = "INVALID_REQUEST"


class TransferNotPermitted(LedgerError):
    """One of the accounts involved in a transfer is not approved"""

    code = "TRANSFER_NOT_PERMITTED"


class InsufficientFunds(LedgerError):
    """Source account balance cannot cover the transfer amount"""

    code = "INSUFFICIENT_FUNDS"


class DuplicateBeneficiary(LedgerError):
    """Customer already has a beneficiary for the target account"""

    code = "DUPLICATE_BENEFICIARY"


class ApprovalNotPermitted(LedgerError):
    """Approval decision attempted by an actor without the staff role"""

    code = "APPROVAL_NOT_PERMITTED"


class DuplicateUsername(LedgerError):
    code = "DUPLICATE_USERNAME"


class DuplicateAccount(LedgerError):
    code = "DUPLICATE_ACCOUNT"


class StorageError(LedgerError):
    """Storage collaborator failed; surfaced as-is, never retried"""

    code = "STORAGE_ERROR"


class ConcurrentModification(StorageError):
    """Record changed in storage since it was read"""

    code = "CONCURRENT_MODIFICATION"
