"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


# Authentication


class AuthenticationError(AppException):
    """An authentication attempt errored (as opposed to simply not being authenticated)."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401):
        """Initialize with 401 status code by default."""
        super().__init__(message, status_code=status_code)


class IdentityError(AuthenticationError):
    """Provider callback was invalid or the identity could not be verified."""

    def __init__(self, message: str = "Identity could not be verified"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


# Provisioning


class ProvisioningStepError(AppException):
    """A single provisioning step failed."""

    step = "unknown"

    def __init__(self, message: str, step: str | None = None):
        """Initialize with 502 status code, optionally overriding the step name."""
        if step is not None:
            self.step = step
        super().__init__(message, status_code=502)


class ProviderError(ProvisioningStepError):
    """The provisioning provider failed or returned malformed data."""

    step = "resource_creation"


class SchemaError(ProvisioningStepError):
    """Schema bootstrap statements failed against the new database."""

    step = "schema_bootstrap"


class PersistenceError(ProvisioningStepError):
    """Metadata store write failed after the external resource was created."""

    step = "persist_user"


class ProvisioningError(AuthenticationError):
    """Provisioning a first-login user failed at one of its steps."""

    MESSAGES = {
        "lookup_user": "user lookup failed",
        ProviderError.step: "resource creation failed",
        SchemaError.step: "schema bootstrap failed",
        PersistenceError.step: "user persistence failed",
    }

    def __init__(self, email: str, cause: ProvisioningStepError):
        """Initialize from the step error that aborted provisioning."""
        self.email = email
        self.step = cause.step
        self.cause = cause
        super().__init__(self.MESSAGES.get(cause.step, "provisioning failed"), status_code=502)
