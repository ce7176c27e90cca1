"""
sovcoin journal verify — settlement journal verification.

Usage:
    sovcoin journal verify <journal>                 Human output (default)
    sovcoin journal verify <journal> --format json   Machine-readable JSON

Exit codes:
    0  Journal fully valid  (sequence + chain + signatures)
    1  Journal has violations
    2  Error  (file missing, malformed line)
"""

import json
import sys
from collections import Counter

import click

from sovcoin.core.exceptions import LedgerError
from sovcoin.ledger.journal import JournalReport, load_entries, verify_entries


@click.group(name="journal")
def journal_group() -> None:
    """Settlement journal tools."""
    pass


@journal_group.command(name="verify")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    show_default=True,
    help="Output format: text (default) or json (CI/automation).",
)
def verify_command(journal: str, fmt: str) -> None:
    """
    Verify a settlement journal — sequence, causal hashes, signatures.

    JOURNAL is the path to a .jsonl settlement journal.
    """
    try:
        entries = load_entries(journal)
    except LedgerError as exc:
        _emit_error(str(exc), fmt)
        sys.exit(2)

    report = verify_entries(entries)
    events = Counter(e.event_type for e in entries)

    if fmt == "json":
        data = report.to_dict()
        data["journal"] = journal
        data["events"] = dict(sorted(events.items()))
        click.echo(json.dumps(data, indent=2))
    else:
        _output_text(journal, report, events)

    sys.exit(0 if report.valid else 1)


def _output_text(journal: str, report: JournalReport, events: Counter) -> None:
    bar = "─" * 60
    click.echo(f"  {bar}")
    click.echo(f"  {'Journal':<16}{journal}")
    click.echo(f"  {'Entries':<16}{report.entries}")
    for event_type, count in sorted(events.items()):
        click.echo(f"  {'':<16}{event_type}: {count}")
    click.echo(f"  {bar}")
    if report.valid:
        click.echo("  VALID   chain intact, all signatures verified")
        return
    click.echo(f"  INVALID {len(report.violations)} violation(s)")
    for v in report.violations:
        click.echo(f"    seq={v.sequence:<6} {v.kind:<12} {v.detail}")


def _emit_error(message: str, fmt: str) -> None:
    if fmt == "json":
        click.echo(json.dumps({"valid": False, "error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
