import json

import click
from rich.console import Console

from ..cli_utils import debug_option, handle_errors, load_command_config
from ..config import get_config_path, set_marketplace_repository, REPOSITORY_PATTERN
from ..domain.marketplace import INDEX_PATH
from ..exit_codes import ConfigError
from ..infra.github_client import GitHubClient

console = Console(stderr=True)


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@click.option("--path", is_flag=True, help="Show the config file path being used")
def show_config(pretty, path):
    """Show the current configuration with all merges applied.

    By default, outputs single-line JSON (JSONL format).
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    """
    if path:
        print(json.dumps({"config_path": str(get_config_path())}))
        return

    config = load_command_config()

    if pretty:
        print(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(config, ensure_ascii=False))


@config_cmd.command("set-repo")
@click.argument("repository")
@click.option("--no-check", is_flag=True, help="Save without checking the repository is reachable")
@debug_option
@handle_errors
def set_repo(repository, no_check, debug):
    """Set the marketplace repository profiles are published to.

    REPOSITORY: GitHub repository in owner/repo form

    Examples:

    \b
        profilehub config set-repo my-org/claude-profiles
        profilehub config set-repo my-org/claude-profiles --no-check
    """
    config = load_command_config(debug)

    if not REPOSITORY_PATTERN.match(repository):
        raise ConfigError("Invalid repository format. Use: owner/repo")

    if not no_check:
        github = config.get('github', {})
        client = GitHubClient(
            api_url=github.get('api_url', 'https://api.github.com'),
            raw_url=github.get('raw_url', 'https://raw.githubusercontent.com'),
            user_agent=github.get('user_agent', 'profilehub'),
            timeout=github.get('timeout_seconds', 30),
        )
        branch = config.get('marketplace', {}).get('base_branch', 'main')
        with console.status(f"Checking {repository}..."):
            found = client.file_exists(repository, INDEX_PATH, branch)
        if not found:
            console.print(f"[yellow]Warning: {repository} has no {INDEX_PATH} yet; "
                          "one is created by the first publish.[/yellow]")

    path = set_marketplace_repository(repository)
    console.print(f"[green]✓[/green] Marketplace set to [bold]{repository}[/bold] ({path})")
