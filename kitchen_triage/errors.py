"""
Error taxonomy shared by the stores, the HTTP client and the triage session.

- ValidationError: malformed input. Never retried, shown to the user verbatim.
- NotFoundError: the referenced order does not exist.
- TransientFetchError: network or server failure while talking to the store.
- ConfigurationError: the dashboard was wired without a required collaborator.
"""


class TriageError(Exception):
    """Base class for every error raised by kitchen_triage."""
    pass


class ValidationError(TriageError):
    """Raised when an order or a status value is malformed."""
    pass


class UnauthorizedError(ValidationError):
    """Raised when the admin key is missing or does not match."""
    pass


class NotFoundError(TriageError):
    """Raised when an order id is unknown to the store."""
    pass


class TransientFetchError(TriageError):
    """Raised when the store could not be reached or answered with a server error."""
    pass


class PersistenceError(TriageError):
    """Raised when a store fails to write its durable copy."""
    pass


class ConfigurationError(TriageError):
    """Raised at construction when a dashboard is missing a collaborator."""
    pass
