"""
Common CLI utilities and decorators for consistent command behavior.
"""

import logging
import sys
from functools import wraps

import click

from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)
from .output import emit_error


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Automatic --debug handling (switches modrelay logging to DEBUG)
    - Errors reported as one JSON object on stderr
    - Exit code taken from CommandError, or mapped from the exception type
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        if kwargs.pop('debug', False):
            logging.getLogger("modrelay").setLevel(logging.DEBUG)

        try:
            code = func(*args, **kwargs)
        except KeyboardInterrupt:
            emit_error("Interrupted by user", type="KeyboardInterrupt")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            emit_error(str(e), type=type(e).__name__, context={'exit_code': e.exit_code})
            sys.exit(e.exit_code)
        except Exception as e:
            code = get_exit_code_for_exception(e)
            emit_error(f"Command failed: {e}", type=type(e).__name__, context={'exit_code': code})
            sys.exit(code)

        sys.exit(code if isinstance(code, int) else SUCCESS)

    return wrapper


debug_option = click.option('--debug', is_flag=True, help='Enable debug logging')
