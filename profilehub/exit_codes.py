"""
Standard exit codes and error types for profilehub commands.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
API_ERROR = 65           # Forge API call failed
CONFIG_ERROR = 66        # Configuration file error
PERMISSION_ERROR = 67    # Insufficient permissions
NETWORK_ERROR = 68       # Network connection failed
AUTH_ERROR = 69          # Authentication/authorization failed
DATA_ERROR = 70          # Data format or validation error
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ConnectionError': NETWORK_ERROR,
    'TimeoutError': NETWORK_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class ProfileNotFoundError(CommandError):
    """Raised when a named profile does not exist locally."""
    def __init__(self, name: str):
        super().__init__(f"Profile not found: {name}", GENERAL_ERROR)
        self.name = name


class InvalidProfile(CommandError):
    """Raised when a local profile fails validation before publishing."""
    def __init__(self, message: str):
        super().__init__(message, DATA_ERROR)


class AuthError(CommandError):
    """Base class for credential and authorization failures."""
    def __init__(self, message: str):
        super().__init__(message, AUTH_ERROR)


class CredentialUnavailable(AuthError):
    """No cached forge credentials could be read."""
    def __init__(self, message: str = "No cached GitHub credentials found"):
        super().__init__(message)


class Unauthorized(AuthError):
    """The forge rejected the token (HTTP 401)."""
    def __init__(self, message: str = (
        "GitHub credentials are expired or invalid. "
        "Re-authenticate with git and try again."
    )):
        super().__init__(message)


class DeviceFlowError(AuthError):
    """The device authorization flow could not complete."""


class DeviceFlowExpired(DeviceFlowError):
    """The device code expired before the user authorized it."""
    def __init__(self, message: str = "Device flow expired. Please try again."):
        super().__init__(message)


class DeviceFlowTimedOut(DeviceFlowError):
    """Polling ran past the device code lifetime."""
    def __init__(self, message: str = "Device flow timed out."):
        super().__init__(message)


class AuthorizationDenied(DeviceFlowError):
    """The user declined the authorization request."""
    def __init__(self, message: str = "User denied authorization."):
        super().__init__(message)


class AuthorizationFailed(DeviceFlowError):
    """The provider returned an unexpected device flow error."""
    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class APIError(CommandError):
    """Raised when an external API call fails."""
    def __init__(self, message: str):
        super().__init__(message, API_ERROR)


class ForgeApiError(APIError):
    """
    A forge API request returned a non-success status.

    ``status`` is the HTTP status code, or None when the request never
    produced a response (connection failure, timeout).
    """
    def __init__(
        self,
        method: str,
        path: str,
        status: Optional[int],
        message: str,
        rate_limit_remaining: Optional[int] = None,
    ):
        status_text = status if status is not None else 'no response'
        super().__init__(f"GitHub API {method} {path} failed ({status_text}): {message}")
        self.method = method
        self.path = path
        self.status = status
        self.reason = message
        self.rate_limit_remaining = rate_limit_remaining

    @property
    def is_forbidden(self) -> bool:
        return self.status == 403

    @property
    def is_rate_limited(self) -> bool:
        return self.status in (403, 429) and self.rate_limit_remaining == 0


class ForkTimeout(APIError):
    """The fork never became ready within the polling budget."""
    def __init__(self, message: str = "Fork creation timed out. Please try again."):
        super().__init__(message)
