"""CLI output formatting functions.

This module contains functions for displaying sync results, name analysis
and token status on the command line.
"""

from typing import TYPE_CHECKING, Any

import click

from hireos_sync.sync.analysis import MatchKind
from hireos_sync.utils.normalization import normalize_name

if TYPE_CHECKING:
    from hireos_sync.sync.analysis import NameAnalysis
    from hireos_sync.sync.engine import SyncResult

# Details shown without --verbose
DEFAULT_DETAIL_LIMIT = 20

ACTION_STYLES = {
    "updated": ("+", "green"),
    "skipped": ("=", None),
    "error": ("!", "red"),
}


def show_sync_details(result: "SyncResult", verbose: bool = False) -> None:
    """
    Display per-contact sync details.

    Args:
        result: The SyncResult to display
        verbose: Show every detail instead of the first DEFAULT_DETAIL_LIMIT
    """
    if not result.details:
        click.echo("\nNo matching candidates found.")
        return

    click.echo("\n=== Details ===")
    details = result.details if verbose else result.details[:DEFAULT_DETAIL_LIMIT]
    for detail in details:
        marker, color = ACTION_STYLES.get(detail.action, ("?", None))
        line = (
            f"  {marker} {detail.remote_name} -> {detail.local_name} "
            f"[{detail.remote_id}]: {detail.reason}"
        )
        click.echo(click.style(line, fg=color) if color else line)

    remaining = len(result.details) - len(details)
    if remaining > 0:
        click.echo(f"  ... and {remaining} more (use --verbose to show all)")


def show_errors(errors: list[str]) -> None:
    """Display sync errors on stderr."""
    if not errors:
        return
    click.echo(click.style("\n=== Errors ===", fg="red"), err=True)
    for error in errors:
        click.echo(click.style(f"  {error}", fg="red"), err=True)


def show_name_analysis(analysis: "NameAnalysis", preview_count: int = 20) -> None:
    """
    Display the result of a name analysis.

    Args:
        analysis: NameAnalysis to display
        preview_count: Number of remote names and candidates to list
    """
    click.echo(f"Unique GoHighLevel contact names: {len(analysis.remote_names)}")
    click.echo(f"Candidates without a GoHighLevel id: {len(analysis.unlinked)}")

    click.echo(f"\nGoHighLevel names (first {preview_count}):")
    for i, name in enumerate(analysis.remote_names[:preview_count], 1):
        click.echo(f'  {i}. "{name}" -> "{normalize_name(name)}"')

    click.echo(f"\nUnlinked candidates (first {preview_count}):")
    for i, candidate in enumerate(analysis.unlinked[:preview_count], 1):
        click.echo(f'  {i}. "{candidate.name}" -> "{candidate.name_key()}"')

    click.echo("\n=== Potential Matches ===")
    for sample in analysis.samples:
        if sample.kind is MatchKind.EXACT:
            click.echo(
                click.style(
                    f'  EXACT: "{sample.candidate_name}" <-> '
                    f'"{sample.exact_remote_name}"',
                    fg="green",
                )
            )
        elif sample.kind is MatchKind.PARTIAL:
            click.echo(
                click.style(f'  PARTIAL: "{sample.candidate_name}"', fg="yellow")
            )
            for partial in sample.partial_matches:
                click.echo(f'    -> "{partial.remote_name}" ({partial.score:.0f})')
        else:
            click.echo(f'  NO MATCH: "{sample.candidate_name}"')

    click.echo("\n=== Analysis Summary ===")
    click.echo(f"  Exact matches: {analysis.exact_count}")
    click.echo(f"  Partial matches: {analysis.partial_count}")
    click.echo(f"  No match: {analysis.no_match_count}")


def show_token_status(status: dict[str, Any]) -> None:
    """Display the stored GoHighLevel token status."""
    if not status.get("present"):
        click.echo(f"GHL tokens: {click.style('Not seeded', fg='red')}")
        click.echo("  Run: hireos-sync token seed --access-token ... --refresh-token ...")
        return

    expired = status.get("expired")
    state = (
        click.style("Expired (will refresh on next use)", fg="yellow")
        if expired
        else click.style("Valid", fg="green")
    )
    click.echo(f"GHL tokens: {state}")
    click.echo(f"  Access token: {status.get('access_token')}")
    click.echo(f"  Expires at: {status.get('expires_at') or 'Unknown'}")
    click.echo(f"  Last updated: {status.get('updated_at') or 'Unknown'}")
    if status.get("company_id"):
        click.echo(f"  Company: {status['company_id']}")
