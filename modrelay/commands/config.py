import click
import json

from ..cli_utils import standard_command
from ..config import load_config, find_config_path


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@click.option("--path", is_flag=True, help="Show the config file path being used")
@standard_command
def show_config(pretty, path):
    """Show the configured routes in match order.

    By default, outputs single-line JSON (JSONL format).
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    """
    if path:
        config_path = find_config_path()
        print(json.dumps({"config_path": str(config_path) if config_path else None}))
        return

    config = load_config()

    if pretty:
        # Pretty print for human readability
        print(json.dumps(config.to_dict(), indent=2, ensure_ascii=False))
    else:
        # Default: single-line JSON (JSONL)
        print(json.dumps(config.to_dict(), ensure_ascii=False))
