"""
Exception hierarchy for TemporaryAI.

All TemporaryAI exceptions inherit from TemporaryAIError, allowing callers to
catch every project-specific failure with a single except clause.

Exception Categories:
    - NavigationError: Malformed navigation input (never leaves the engine)
    - CryptoError: Key derivation / authenticated encryption failures
    - ContainerError: Export file could not be turned back into cookies
    - StorageError: Cookie database operation failed
    - SettingsError: Configuration file could not be loaded

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context where it is safe to expose
    - Passwords, keys and cookie values never appear in messages or context
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Navigation errors: 1xxx
ERROR_NAV_UNSUPPORTED_SCHEME = 1001
ERROR_NAV_MISSING_HOST = 1002
ERROR_NAV_INVALID_URL = 1003

# Crypto errors: 2xxx
ERROR_CRYPTO_ENCRYPTION_FAILED = 2001
ERROR_CRYPTO_INVALID_PASSWORD = 2002

# Container errors: 3xxx
ERROR_CONTAINER_PASSWORD_REQUIRED = 3001
ERROR_CONTAINER_CORRUPTED = 3002
ERROR_CONTAINER_PARSE = 3003
ERROR_CONTAINER_EXPIRY_RANGE = 3004

# Storage errors: 4xxx
ERROR_STORAGE_CONNECTION = 4001
ERROR_STORAGE_WRITE = 4002
ERROR_STORAGE_READ = 4003

# Settings errors: 5xxx
ERROR_SETTINGS_INVALID = 5001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class TemporaryAIError(Exception):
    """
    Base exception for all TemporaryAI errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Navigation Errors
# =============================================================================


@dataclass
class NavigationError(TemporaryAIError):
    """
    Base class for malformed navigation input.

    The policy engine raises these internally while parsing a target URL and
    always turns them into a CANCEL decision; they never reach the caller.

    Attributes:
        url: The navigation target that could not be evaluated
    """

    url: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["url"] = self.url


@dataclass
class UnsupportedSchemeError(NavigationError):
    """Raised when a navigation targets a scheme other than http/https."""

    scheme: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unsupported scheme: {self.scheme or '<none>'}"
        if self.code == 0:
            self.code = ERROR_NAV_UNSUPPORTED_SCHEME
        super().__post_init__()
        self.context["scheme"] = self.scheme


@dataclass
class MissingHostError(NavigationError):
    """Raised when a top-level navigation has no host."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Navigation target has no host: {self.url}"
        if self.code == 0:
            self.code = ERROR_NAV_MISSING_HOST
        super().__post_init__()


@dataclass
class InvalidURLError(NavigationError):
    """Raised when a navigation target cannot be parsed at all."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid URL: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_NAV_INVALID_URL
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Crypto Errors
# =============================================================================


@dataclass
class CryptoError(TemporaryAIError):
    """Base class for key derivation and encryption failures."""


@dataclass
class EncryptionFailedError(CryptoError):
    """
    Raised when the AEAD primitive refuses to seal a payload.

    This should be unreachable with correct key and nonce sizes; treat it as
    an internal invariant violation.
    """

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Encryption failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CRYPTO_ENCRYPTION_FAILED
        self.context["underlying_error"] = self.underlying_error


@dataclass
class InvalidPasswordError(CryptoError):
    """
    Raised when an encrypted payload fails authentication.

    A wrong password and tampered ciphertext are reported identically so the
    error cannot be used as an oracle while guessing passwords.
    """

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Invalid password or corrupted data"
        if self.code == 0:
            self.code = ERROR_CRYPTO_INVALID_PASSWORD
        if not self.suggestion:
            self.suggestion = "Check the password used when the cookies were exported"


# =============================================================================
# Container Errors
# =============================================================================


@dataclass
class ContainerError(TemporaryAIError):
    """Base class for export container failures."""


@dataclass
class PasswordRequiredError(ContainerError):
    """Raised when an encrypted container is imported without a password."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Password required to import encrypted cookies"
        if self.code == 0:
            self.code = ERROR_CONTAINER_PASSWORD_REQUIRED
        if not self.suggestion:
            self.suggestion = "Supply the password used when the cookies were exported"


@dataclass
class CorruptedDataError(ContainerError):
    """Raised when an encrypted container has an unusable payload or salt."""

    field_name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Corrupted encrypted data"
            if self.field_name:
                self.message += f" ({self.field_name})"
        if self.code == 0:
            self.code = ERROR_CONTAINER_CORRUPTED
        self.context["field"] = self.field_name


@dataclass
class ContainerParseError(ContainerError):
    """Raised when input is neither an export container nor a bare cookie list."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Not a cookie export file: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONTAINER_PARSE
        self.context["underlying_error"] = self.underlying_error


@dataclass
class ExpiryOutOfRangeError(ContainerError):
    """Raised when an expiry override lands outside the representable date range."""

    days: float = 0.0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cookie expiry override of {self.days:g} days is out of range"
        if self.code == 0:
            self.code = ERROR_CONTAINER_EXPIRY_RANGE
        if not self.suggestion:
            self.suggestion = "Use a shorter validity window"
        self.context["days"] = self.days


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(TemporaryAIError):
    """
    Base class for cookie database errors.

    Attributes:
        operation: The operation that failed (e.g., "insert", "query")
    """

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["operation"] = self.operation


@dataclass
class StorageConnectionError(StorageError):
    """Raised when the cookie database cannot be opened."""

    db_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to connect to database: {self.db_path}"
        if self.code == 0:
            self.code = ERROR_STORAGE_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the database path is valid and writable"
        super().__post_init__()
        self.context["db_path"] = self.db_path


@dataclass
class StorageWriteError(StorageError):
    """Raised when a write operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageReadError(StorageError):
    """Raised when a read operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Settings Errors
# =============================================================================


@dataclass
class SettingsError(TemporaryAIError):
    """Raised when a settings file is missing, unreadable or invalid."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid settings: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_SETTINGS_INVALID
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })
