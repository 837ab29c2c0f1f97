"""
Publish command for modrelay.

Packages the Go module in the current directory at a git tag and uploads
it to the repository its module path is routed to.
"""

from typing import Optional

import click

from ..cli_utils import standard_command, debug_option
from ..config import load_config
from ..output import emit
from ..services.publish_service import PublishService


@click.command('publish')
@click.argument('version')
@click.option('-d', '--dir', 'directory', type=click.Path(exists=True, file_okay=False),
              help='Module directory containing go.mod (default: current directory)')
@click.option('--pretty', is_flag=True, help='Display uploaded assets as a table')
@debug_option
@standard_command
def publish_handler(version: str, directory: Optional[str], pretty: bool):
    """
    Publish a module version to its configured repository.

    VERSION is a git tag (or other ref) naming the commit to publish.
    Uploads <version>.info, <version>.mod and <version>.zip in that
    order; the version only becomes visible once the zip is uploaded.
    A failed upload leaves the earlier assets unfinished: fix the cause
    and publish the same version again.

    \b
    Examples:
        modrelay publish v0.1.0
        modrelay publish v1.2.0 --dir ./submodule --pretty
    """
    config = load_config(start=directory)
    service = PublishService(config.router, working_dir=directory)
    result = service.publish(version)

    if pretty:
        emit(
            result.assets,
            pretty=True,
            columns=['name', 'size', 'sha256', 'unfinished'],
            title=f"{result.module_path}@{result.version} -> {result.repository}",
        )
    else:
        emit([result])
