"""Error taxonomy shared by the referral PDF service, the API and the client."""


class IntakeError(RuntimeError):
    """Base class for referral intake errors."""


class ConfigurationError(IntakeError):
    """Required settings (e.g. SMTP credentials) are missing."""


class ResourceNotFound(IntakeError):
    """A template or static resource could not be located."""


class ValidationError(IntakeError):
    """The payload is malformed or misses a required field."""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = dict(errors or {})


class MalformedDocument(IntakeError):
    """PDF bytes could not be parsed."""


class DeliveryFailure(IntakeError):
    """Sending the merged referral failed."""
