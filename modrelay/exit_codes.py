"""
Standard exit codes and error types for modrelay.

Following Unix/POSIX conventions for command-line tools. Every error the
proxy or the publish pipeline raises is a CommandError carrying the exit
code the CLI should terminate with.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NO_ROUTE = 64            # No configured repository owns the module path
API_ERROR = 65           # Artifact repository call failed
CONFIG_ERROR = 66        # Configuration file error
PERMISSION_ERROR = 67    # Insufficient permissions
NETWORK_ERROR = 68       # Network connection failed
AUTH_ERROR = 69          # Authentication/authorization failed
DATA_ERROR = 70          # Data format or validation error
VCS_ERROR = 72           # Git unavailable, ref missing, or path outside checkout
MODULE_ERROR = 73        # go.mod missing or without a module directive
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
    'NoCredentialsError': AUTH_ERROR,
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


class NoRouteError(CommandError):
    """Raised when no configured pattern matches a module path."""
    def __init__(self, module_path: str):
        super().__init__(f"No repository found matching module: {module_path}", NO_ROUTE)
        self.module_path = module_path


class MalformedRequest(CommandError):
    """Raised when a module-fetch request path cannot be parsed."""
    def __init__(self, message: str):
        super().__init__(message, DATA_ERROR)


class OperationUnsupported(CommandError):
    """Raised for protocol operations or asset types that are not served."""
    def __init__(self, message: str):
        super().__init__(message, DATA_ERROR)


class BackendError(CommandError):
    """
    Raised when an artifact repository call fails.

    ``coordinates`` names the domain/owner/repository/namespace/package
    (and version/asset where known) the call was addressed to.
    """
    def __init__(self, message: str, coordinates: Optional[str] = None):
        super().__init__(message, API_ERROR)
        self.coordinates = coordinates


class BackendNotFound(BackendError):
    """Raised when the requested asset does not exist in the repository."""


class BackendFailure(BackendError):
    """Raised on network, authentication or server errors from the repository."""


class VcsUnavailable(CommandError):
    """Raised when git cannot resolve the checkout root or the requested ref."""
    def __init__(self, message: str):
        super().__init__(message, VCS_ERROR)


class PathOutsideRepo(CommandError):
    """Raised when the module directory is not inside the git checkout."""
    def __init__(self, message: str):
        super().__init__(message, VCS_ERROR)


class ModuleDescriptorMissing(CommandError):
    """Raised when go.mod is absent, unreadable or declares no module path."""
    def __init__(self, message: str):
        super().__init__(message, MODULE_ERROR)


class ArchiveError(CommandError):
    """Raised when the module tree violates the module zip rules."""
    def __init__(self, message: str):
        super().__init__(message, DATA_ERROR)
