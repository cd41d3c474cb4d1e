# courtroom/errors.py
from enum import Enum


class CourtroomError(Exception):
    """Base class for everything the courtroom core raises on purpose."""


class ValidationError(CourtroomError):
    """Malformed input, rejected before any state changes."""


class StateError(CourtroomError):
    """Operation attempted in a phase that does not allow it."""


class CaseNotFoundError(CourtroomError):
    pass


class SessionNotFoundError(CourtroomError):
    pass


class PersistenceError(CourtroomError):
    """Storage write or read failed."""


# ------------------------------- Gateway failures -------------------------------
class FailureKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    RATE_LIMITED = "rate_limited"
    PROVIDER_ERROR = "provider_error"


class GatewayError(CourtroomError):
    kind: FailureKind = FailureKind.PROVIDER_ERROR
    user_message = "The AI service failed. Try again."

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.user_message)
        self.detail = detail


class CredentialError(GatewayError):
    pass


class MissingCredentialError(CredentialError):
    kind = FailureKind.MISSING_CREDENTIAL
    user_message = "No Groq API key found. Add one to your profile."


class InvalidCredentialError(CredentialError):
    kind = FailureKind.INVALID_CREDENTIAL
    user_message = "Invalid Groq API key. Update your profile."


class ProviderTransientError(GatewayError):
    pass


class RateLimitedError(ProviderTransientError):
    kind = FailureKind.RATE_LIMITED
    user_message = "Groq rate limit reached. Try again later."


class ProviderError(ProviderTransientError):
    kind = FailureKind.PROVIDER_ERROR
