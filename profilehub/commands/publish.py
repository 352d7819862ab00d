"""
Publish command for profilehub.

Publishes a local profile to the marketplace as a pull request.
"""

import json
import sys

import click
from rich.console import Console

from ..cli_utils import debug_option, handle_errors, load_command_config
from ..domain.profile import ProfileMetadata, format_contents
from ..infra.device_auth import DeviceCode
from ..services.profile_service import ProfileStore
from ..services.publish_service import PublishService


def _print_summary(console: Console, name: str, metadata: ProfileMetadata, snapshot: bytes, repository: str):
    console.print()
    console.print("[bold]Publish Profile to Marketplace[/bold]")
    console.print("[dim]" + "─" * 50 + "[/dim]")
    console.print(f"  [cyan]Name:[/cyan]    {name}")
    console.print(f"  [cyan]Version:[/cyan] {metadata.version}")
    console.print(f"  [cyan]Size:[/cyan]    {len(snapshot) / 1024:.1f}KB")
    if metadata.description:
        console.print(f"  [cyan]Desc:[/cyan]    {metadata.description}")
    for category, display in format_contents(metadata.contents):
        console.print(f"  [cyan]{category}:[/cyan] [dim]{display}[/dim]")
    console.print(f"  [cyan]Target:[/cyan]  {repository}")
    console.print()


def _device_code_printer(console: Console):
    def show(code: DeviceCode) -> None:
        console.print()
        console.print("[yellow]To authorize profilehub, visit:[/yellow]")
        console.print(f"[yellow]  Open: [bold]{code.verification_uri}[/bold][/yellow]")
        console.print(f"[yellow]  Enter code: [bold]{code.user_code}[/bold][/yellow]")
        console.print()
    return show


@click.command('publish')
@click.argument('name')
@click.option('--yes', '-y', is_flag=True, help='Skip the confirmation prompt')
@click.option('--json', 'output_json', is_flag=True, help='Output progress and result as JSONL')
@debug_option
@handle_errors
def publish_handler(name: str, yes: bool, output_json: bool, debug: bool):
    """
    Publish profile NAME to the marketplace.

    Uses cached git credentials when they can write to the marketplace.
    Otherwise authorizes in the browser and opens the pull request
    from your fork.

    Examples:

        profilehub publish my-setup
        profilehub publish my-setup --yes --json
    """
    config = load_command_config(debug)
    repository = config.get('marketplace', {}).get('repository', '')

    metadata, snapshot = ProfileStore.from_config(config).load_for_publish(name)
    metadata.validate()

    console = Console(stderr=True)

    if not output_json:
        _print_summary(console, name, metadata, snapshot, repository)
    if not yes and not click.confirm(f"Publish {name} to {repository}?", default=True, err=True):
        click.echo("Aborted.", err=True)
        return

    service = PublishService.from_config(config, on_device_code=_device_code_printer(console))

    if output_json:
        for message in service.publish(name, metadata, snapshot):
            print(json.dumps({'progress': message}), flush=True)
        result = service.last_result
        print(json.dumps(dict(result.to_dict(), type='summary')), flush=True)
        return

    with console.status("Publishing...") as status:
        for message in service.publish(name, metadata, snapshot):
            status.update(message)

    result = service.last_result
    if not result:
        console.print("[red]Publish failed - no result[/red]")
        sys.exit(1)

    console.print("[bold green]✓[/bold green] Pull request created!")
    console.print()
    print(f"  PR: {result.url}", flush=True)
    console.print()
    console.print("[dim]A maintainer will review and merge your profile.[/dim]")
