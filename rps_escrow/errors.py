from __future__ import annotations


class EscrowError(ValueError):
    """Base class for every rejected engine operation.

    A rejected operation leaves game records, balances and the event log untouched.
    """


class InvalidArgument(EscrowError):
    """Zero/empty identifiers, zero wager, NONE move, mismatched wager, zero block budget."""


class Unauthorized(EscrowError):
    """Caller is not the player the operation expects."""


class NotFound(EscrowError):
    """No game record at the given identifier."""


class AlreadyExists(EscrowError):
    """A game record already exists at the given identifier."""


class InvalidState(EscrowError):
    """Action attempted out of order for the game (or balance) it targets."""
