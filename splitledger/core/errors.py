from decimal import Decimal


class LedgerError(Exception):
    """Base class for balance ledger errors."""


class NotFoundError(LedgerError):
    """Raised when a user or group id does not exist."""

    def __init__(self, kind: str, identifier):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} {identifier} does not exist")


class DataAccessError(LedgerError):
    """Raised when the backing store is unreachable or returns malformed rows."""


class InvariantViolation(LedgerError):
    """
    Net balances of a scope do not sum to zero.

    Points at inconsistent upstream data or a calculator bug. Logged,
    never surfaced to request callers.
    """

    def __init__(self, total: Decimal, scope_size: int):
        self.total = total
        self.scope_size = scope_size
        super().__init__(
            f"Net balances of {scope_size} participants sum to {total}, expected 0.00"
        )


class InvalidScopeError(LedgerError):
    """Raised when a scope is malformed, e.g. a pair made of one user."""
