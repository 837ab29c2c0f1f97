#!/usr/bin/env python3

import click

from modrelay.commands.go import go_handler
from modrelay.commands.serve import serve_handler
from modrelay.commands.publish import publish_handler
from modrelay.commands.config import config_cmd


@click.group()
@click.version_option(package_name='modrelay')
def cli():
    """modrelay - Go module proxy for private artifact repositories.

    Routes module path patterns to private repositories while every other
    module falls through to the public proxy, and publishes tagged module
    versions to those repositories.
    """
    pass


cli.add_command(go_handler, name='go')
cli.add_command(serve_handler, name='serve')
cli.add_command(publish_handler, name='publish')
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
