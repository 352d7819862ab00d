"""
Save command for profilehub.

Saves a project's .claude directory as a custom profile.
"""

import json
from pathlib import Path
from typing import Optional

import click

from ..cli_utils import debug_option, handle_errors, load_command_config
from ..services.profile_service import ProfileStore


@click.command('save')
@click.argument('name')
@click.option('--description', '-d', default=None, help='Profile description')
@click.option('--force', is_flag=True, help='Overwrite an existing custom profile')
@click.option('--target', type=click.Path(file_okay=False), default=None,
              help='Project directory to save from (default: current directory)')
@click.option('--json', 'output_json', is_flag=True, help='Output result as JSON')
@debug_option
@handle_errors
def save_handler(
    name: str,
    description: Optional[str],
    force: bool,
    target: Optional[str],
    output_json: bool,
    debug: bool,
):
    """
    Save the current .claude directory as profile NAME.

    Examples:

        profilehub save my-setup
        profilehub save my-setup -d "Hooks for the API repo" --force
    """
    config = load_command_config(debug)
    target_dir = Path(target or config.get('general', {}).get('target_dir', '.')).expanduser()

    save_dir = ProfileStore.from_config(config).save(name, target_dir, description=description, force=force)

    if output_json:
        print(json.dumps({'name': name, 'path': str(save_dir)}, ensure_ascii=False), flush=True)
    else:
        click.echo(f'Saved profile "{name}" to {save_dir}')
