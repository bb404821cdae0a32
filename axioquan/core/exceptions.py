"""Auth layer exceptions.

Raised by the account store and the session codec; the auth actions in
``axioquan.services.auth`` convert them into ``ActionResult`` values so
none of them reach a page handler.
"""


class AuthError(Exception):
    """Base class for auth layer errors."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.message = message
        self.errors = errors or [message]
        super().__init__(message)


class SignupValidationError(AuthError):
    """Signup input rejected before touching the store."""


class DuplicateAccountError(AuthError):
    """Email or username already registered."""

    def __init__(self, message: str = "User already exists"):
        super().__init__(message, ["Email or username already registered"])


class UnknownRoleError(AuthError):
    """Role name missing from the reference table (a data/config problem)."""

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Role '{role_name}' not found in database")


class AccountStoreError(AuthError):
    """Store call failed or returned nothing where a row was required."""


class StoreTimeout(AccountStoreError):
    """Store call exceeded the configured timeout."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Database call timed out: {operation}")


class MalformedSessionError(AuthError):
    """Session cookie could not be decoded, verified or validated."""
