class LedgerError(Exception):
    """Base class for every failure the ledger reports to its caller."""

    kind = "ledger_error"


class NotFoundError(LedgerError):
    """Raised when a swap, account or currency is absent."""

    kind = "not_found"


class SwapNotFoundError(NotFoundError):
    kind = "swap_not_found"


class AccountNotFoundError(NotFoundError):
    """Raised when an account id or (user, currency) pair is missing from the store."""

    kind = "account_not_found"


class MakerAccountNotFoundError(AccountNotFoundError):
    kind = "maker_account_not_found"


class CurrencyNotFoundError(NotFoundError):
    kind = "currency_not_found"


class TransactionNotFoundError(NotFoundError):
    kind = "transaction_not_found"


class InvalidStateError(LedgerError):
    """Raised when a swap transition is attempted from the wrong status."""

    kind = "invalid_state"


class SwapNotPendingError(InvalidStateError):
    kind = "swap_not_pending"


class SwapNotAcceptedError(InvalidStateError):
    kind = "swap_not_accepted"


class InsufficientFundsError(LedgerError):
    """Raised when a debit would drop a balance below zero."""

    kind = "insufficient_balance"


class NotAuthorizedError(LedgerError):
    """Raised when the accepting user is not the designated taker."""

    kind = "not_authorized"


class CannotAcceptOwnSwapError(NotAuthorizedError):
    kind = "cannot_accept_own_swap"


class DuplicateTransactionIdError(LedgerError):
    """Raised when a transaction id has already been written to the log."""

    kind = "duplicate_transaction_id"


class ConstraintViolationError(LedgerError):
    """Raised when storage rejects a write on a uniqueness or foreign key rule."""

    kind = "constraint_violation"
