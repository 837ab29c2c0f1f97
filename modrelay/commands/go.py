"""
Go command wrapper for modrelay.

Runs the go tool with the module proxy in front of the configured
GOPROXY list, so private modules resolve from their repositories and
everything else falls through to the usual proxies.
"""

import logging
import os
import subprocess
from typing import Dict, List, Mapping

import click

from ..cli_utils import standard_command
from ..config import load_config
from ..exit_codes import CommandError
from ..proxy import running_proxy

logger = logging.getLogger(__name__)

DEFAULT_GOPROXY = "https://proxy.golang.org,direct"


def go_environment(environ: Mapping[str, str], proxy_url: str, patterns: List[str]) -> Dict[str, str]:
    """
    Environment for the go tool with the proxy prepended to GOPROXY.

    Routed patterns are added to GONOSUMDB since private modules are not
    known to the public checksum database.
    """
    env = dict(environ)

    go_proxy = environ.get('GOPROXY') or DEFAULT_GOPROXY
    env['GOPROXY'] = f"{proxy_url},{go_proxy}"

    no_sum_db = [environ['GONOSUMDB']] if environ.get('GONOSUMDB') else []
    env['GONOSUMDB'] = ",".join(no_sum_db + list(patterns))

    return env


@click.command(
    'go',
    context_settings={'ignore_unknown_options': True, 'allow_interspersed_args': False},
    add_help_option=False,
)
@click.argument('go_args', nargs=-1, type=click.UNPROCESSED)
@standard_command
def go_handler(go_args):
    """Run a go command through the module proxy.

    All arguments are passed to go unchanged and the exit code of go is
    returned.

    \b
    Examples:
      modrelay go mod download
      modrelay go build ./...
      modrelay go get github.com/acme/widgets@v0.1.0
    """
    config = load_config()

    with running_proxy(config.router) as server:
        env = go_environment(os.environ, server.url, config.router.patterns)
        logger.debug(f"GOPROXY={env['GOPROXY']} GONOSUMDB={env['GONOSUMDB']}")
        try:
            result = subprocess.run(["go", *go_args], env=env)
        except FileNotFoundError as e:
            raise CommandError(f"go command not found: {e}") from e

    return result.returncode
