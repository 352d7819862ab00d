"""
List command for profilehub.

Shows built-in profiles first, then custom ones marked ``[custom]``.
"""

import json

import click
from rich.console import Console
from rich.table import Table

from ..cli_utils import debug_option, handle_errors, load_command_config
from ..services.profile_service import ProfileStore


@click.command('list')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSONL')
@click.option('--pretty', is_flag=True, help='Display as a formatted table')
@debug_option
@handle_errors
def list_handler(output_json: bool, pretty: bool, debug: bool):
    """
    List available profiles.

    Examples:

        profilehub list
        profilehub list --json
        profilehub list --pretty
    """
    config = load_command_config(debug)
    profiles = ProfileStore.from_config(config).list_profiles()

    if output_json:
        for info in profiles:
            print(json.dumps(info.to_dict(), ensure_ascii=False), flush=True)
        return

    if not profiles:
        click.echo("No profiles found.", err=True)
        return

    if pretty:
        table = Table(title="Profiles", show_header=True)
        table.add_column("Name", style="cyan")
        table.add_column("Description")
        table.add_column("Type", style="dim")
        for info in profiles:
            table.add_row(info.name, info.description, "custom" if info.custom else "built-in")
        Console().print(table)
        return

    for info in profiles:
        marker = " [custom]" if info.custom else ""
        click.echo(f"  {info.name}{marker} - {info.description}")
