"""
sovcoin/cli/__init__.py

sovcoin CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    sovcoin = "sovcoin.cli:cli"

Adding a new command:
    1. Create sovcoin/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import click

from sovcoin.cli.journal import journal_group
from sovcoin.cli.preview import preview_command
from sovcoin.logging import configure_logging, load_logging_options_from_env


@click.group()
@click.version_option(package_name="sovcoin")
def cli() -> None:
    """
    sovcoin — sovereign coin settlement tools.

    \b
    Commands:
      preview          Preview a mint or redemption conversion.
      journal verify   Verify a settlement journal — chain and signatures.

    \b
    Quick start:
      sovcoin preview settings.yaml MXNs --settlement 1000000
      sovcoin preview settings.yaml MXNs --sovereign 17250000
      sovcoin journal verify .sovcoin/journal.jsonl --format json
    """
    configure_logging(load_logging_options_from_env())


cli.add_command(preview_command)
cli.add_command(journal_group)
