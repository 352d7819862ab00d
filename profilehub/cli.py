#!/usr/bin/env python3

import click

from profilehub.commands.list import list_handler
from profilehub.commands.swap import swap_handler
from profilehub.commands.save import save_handler
from profilehub.commands.publish import publish_handler
from profilehub.commands.config import config_cmd


@click.group()
@click.version_option(package_name='profilehub')
def cli():
    """profilehub - Swap, save and publish Claude Code profiles.

    Profiles are saved .claude directories. Apply one to a project,
    save your current setup, or share it on the marketplace.
    """
    pass


cli.add_command(list_handler, name='list')
cli.add_command(swap_handler, name='swap')
cli.add_command(save_handler, name='save')
cli.add_command(publish_handler, name='publish')
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
