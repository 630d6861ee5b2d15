"""Error types raised by the submission pipeline"""


class FormRelayError(Exception):
    """Base class for pipeline errors."""

    pass


class ConfigurationError(FormRelayError):
    """Raised when a credential or setting needed by an action is missing."""

    pass


class ActionExecutionError(FormRelayError):
    """Raised when a delivery target answers with a non-2xx response."""

    pass


class StorageError(FormRelayError):
    """Raised when the CMS API rejects a query or mutation."""

    pass
