"""
Serve command for modrelay.

Runs the module proxy in the foreground, for use with a GOPROXY setting
managed outside modrelay.
"""

import click
import logging

from ..cli_utils import standard_command, debug_option
from ..config import load_config
from ..proxy import run_proxy_server

logger = logging.getLogger(__name__)


@click.command('serve')
@click.option('--host', default='127.0.0.1', help='Address to bind (default: 127.0.0.1)')
@click.option('--port', '-p', default=8765, type=int, help='Port to listen on (default: 8765)')
@debug_option
@standard_command
def serve_handler(host: str, port: int):
    """Start the module proxy server.

    \b
    Point the go command at it, keeping the public proxy as fallback:
      export GOPROXY=http://127.0.0.1:8765,https://proxy.golang.org,direct
      export GONOSUMDB=github.com/acme/*

    \b
    Examples:
      modrelay serve
      modrelay serve --port 9000 --debug
    """
    config = load_config()
    click.echo(f"Starting modrelay proxy on http://{host}:{port}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)
    run_proxy_server(config.router, host=host, port=port)
