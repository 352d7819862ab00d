"""
Swap command for profilehub.

Replaces a project's .claude directory with a saved profile.
"""

import json
from pathlib import Path
from typing import Optional

import click

from ..cli_utils import debug_option, handle_errors, load_command_config
from ..services.profile_service import ProfileStore


@click.command('swap')
@click.argument('name')
@click.option('--target', type=click.Path(file_okay=False), default=None,
              help='Project directory (default: general.target_dir, usually the current directory)')
@click.option('--json', 'output_json', is_flag=True, help='Output result as JSON')
@debug_option
@handle_errors
def swap_handler(name: str, target: Optional[str], output_json: bool, debug: bool):
    """
    Apply profile NAME to a project.

    The project's existing .claude directory is replaced.

    Examples:

        profilehub swap minimal
        profilehub swap reviewer --target ~/work/api
    """
    config = load_command_config(debug)
    target_dir = Path(target or config.get('general', {}).get('target_dir', '.')).expanduser()

    result = ProfileStore.from_config(config).swap(name, target_dir)

    if output_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False), flush=True)
    else:
        click.echo(f"Switched to profile: {result.name} ({result.files_copied} files)")
