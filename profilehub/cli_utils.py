"""
Common CLI utilities for consistent command behavior.
"""

import json
import logging
import sys
from functools import wraps

import click

from .config import configure_logging, load_config
from .exit_codes import INTERRUPTED, CommandError, get_exit_code_for_exception


def handle_errors(func):
    """
    Decorator that maps failures to exit codes:
    - CommandError and subclasses exit with their own code
    - Ctrl+C, or an aborted prompt, exits with 130
    - Anything else is reported and exits by exception type

    With ``output_json`` set, errors are written as a JSON object on stdout
    in addition to the message on stderr.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        output_json = kwargs.get('output_json', False)
        try:
            return func(*args, **kwargs)
        except (KeyboardInterrupt, click.Abort):
            click.echo("Interrupted by user", err=True)
            sys.exit(INTERRUPTED)
        except click.ClickException:
            raise
        except CommandError as e:
            _report(e, e.exit_code, output_json)
            sys.exit(e.exit_code)
        except Exception as e:
            logging.getLogger(__name__).debug("Command failed", exc_info=True)
            code = get_exit_code_for_exception(e)
            _report(e, code, output_json)
            sys.exit(code)

    return wrapper


def _report(error: Exception, exit_code: int, output_json: bool) -> None:
    click.echo(f"Error: {error}", err=True)
    if output_json:
        error_obj = {
            "error": str(error),
            "type": type(error).__name__,
            "exit_code": exit_code,
        }
        print(json.dumps(error_obj, ensure_ascii=False), flush=True)


def load_command_config(debug: bool = False):
    """Load configuration and set log levels for a command."""
    config = load_config()
    configure_logging(config, debug=debug)
    return config


debug_option = click.option('--debug', is_flag=True, help='Enable debug logging')
