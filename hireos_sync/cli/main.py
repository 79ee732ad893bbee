"""
Command-line interface for hireos_sync.

Provides CLI commands for linking HireOS candidates to GoHighLevel contacts,
managing GoHighLevel OAuth tokens and triggering workflows.

Usage:
    # Show help
    hireos-sync --help

    # Preview and run the contact sync
    hireos-sync sync --dry-run
    hireos-sync sync

    # Seed OAuth tokens after authorizing the app
    hireos-sync token seed --access-token ... --refresh-token ... --expires-in 86399

    # Trigger a workflow
    hireos-sync add-to-workflow abc123 interview

    # Push a candidate's role and status tags
    hireos-sync push-candidate 42 --status offer_sent
"""

import csv
import json
import sqlite3
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from hireos_sync import __version__
from hireos_sync.api.contact_push import (
    CandidateContact,
    ContactPushClient,
    ContactPushError,
    upserted_contact_id,
)
from hireos_sync.api.ghl_client import GHLAPIError, GHLClient
from hireos_sync.api.ghl_fetch import GHLHttpClient
from hireos_sync.api.workflows import WorkflowClient, WorkflowError
from hireos_sync.auth.ghl_oauth import TokenError, TokenManager
from hireos_sync.cli.formatters import (
    show_errors,
    show_name_analysis,
    show_sync_details,
    show_token_status,
)
from hireos_sync.config.generator import save_config_file
from hireos_sync.config.loader import DEFAULT_CONFIG_FILE, ConfigError, ConfigLoader
from hireos_sync.config.settings import ConfigurationError, GHLSettings
from hireos_sync.storage.db import SyncDatabase
from hireos_sync.sync.analysis import DEFAULT_SAMPLE_SIZE, analyze_name_differences
from hireos_sync.sync.contact import LocalCandidateRef
from hireos_sync.sync.engine import SyncEngine
from hireos_sync.utils import resolve_config_dir
from hireos_sync.utils.logging import (
    cleanup_old_logs,
    get_logger,
    setup_logging,
    setup_matching_logger,
)
from hireos_sync.utils.paths import resolve_db_path

# Remote names fetched by analyze-names by default
DEFAULT_ANALYZE_LIMIT = 50


def get_config_dir(config_dir: str | None) -> Path:
    """Get the configuration directory path."""
    return resolve_config_dir(config_dir)


def get_config_file(config_dir: Path, config_file: str | None) -> Path:
    """Get the configuration file path."""
    if config_file:
        return Path(config_file).expanduser()
    return config_dir / DEFAULT_CONFIG_FILE


def get_settings(ctx: click.Context) -> GHLSettings:
    """Build GoHighLevel settings from the loaded config and environment."""
    return GHLSettings.from_config(ctx.obj.get("config", {}))


def open_database(ctx: click.Context) -> SyncDatabase:
    """Open (and create if needed) the candidate and token database."""
    config = ctx.obj.get("config", {})
    db_path = resolve_db_path(ctx.obj["config_dir"], config.get("db_path"))
    db_path.parent.mkdir(parents=True, exist_ok=True)

    db = SyncDatabase(str(db_path))
    db.initialize()
    return db


def build_http_client(settings: GHLSettings, db: SyncDatabase) -> GHLHttpClient:
    """OAuth-authenticated v2 client backed by the token row in db."""
    return GHLHttpClient(
        TokenManager(db, settings),
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        rate_limit_delay=settings.rate_limit_delay,
    )


def fail(message: str) -> NoReturn:
    """Print an error in red and exit with status 1."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="hireos-sync")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="HIREOS_SYNC_CONFIG_DIR",
    help="Configuration directory path (default: ~/.hireos-sync).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="HIREOS_SYNC_CONFIG_FILE",
    help="Configuration file path (default: <config-dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: str | None,
    config_file: str | None,
) -> None:
    """
    HireOS GoHighLevel integration.

    Links HireOS candidates to GoHighLevel contacts by name, keeps the
    GoHighLevel OAuth tokens fresh and adds contacts to workflows.

    Credentials are read from the environment: GHL_API_KEY, GHL_LOCATION_ID,
    GHL_CLIENT_ID and GHL_CLIENT_SECRET.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = get_config_dir(config_dir)
    resolved_config_file = get_config_file(resolved_config_dir, config_file)

    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    config: dict[str, Any] = {}
    try:
        loader = ConfigLoader(config_dir=resolved_config_dir)
        config = loader.load_from_file(resolved_config_file)
        if config:
            loader.validate(config)
    except ConfigError as e:
        # Keep the CLI usable with a broken config file
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )
        config = {}

    ctx.obj["config"] = config

    effective_verbose = verbose or config.get("verbose", False)
    ctx.obj["verbose"] = effective_verbose

    if config.get("log_dir"):
        log_dir = Path(config["log_dir"]).expanduser()
    else:
        log_dir = resolved_config_dir / "logs"
    ctx.obj["log_dir"] = log_dir

    setup_logging(verbose=effective_verbose, log_dir=log_dir, enable_file_logging=True)

    log_retention = config.get("log_retention_count", 10)
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


# =============================================================================
# Sync Command
# =============================================================================


@cli.command("sync")
@click.option(
    "--dry-run", "-n", is_flag=True, help="Preview links without writing them."
)
@click.option(
    "--limit",
    "-l",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum GoHighLevel contacts to fetch (default: 300).",
)
@click.option(
    "--page-size",
    type=click.IntRange(min=1),
    default=None,
    help="Contacts per page (default: 20).",
)
@click.option(
    "--json", "as_json", is_flag=True, help="Print the result as JSON."
)
@click.pass_context
def sync_command(
    ctx: click.Context,
    dry_run: bool,
    limit: int | None,
    page_size: int | None,
    as_json: bool,
) -> None:
    """
    Link candidates to GoHighLevel contacts by name.

    Fetches GoHighLevel contacts, matches them to candidates by normalized
    name and stores the contact id on each matching candidate that has no
    link yet. Existing links are never changed.

    Examples:

        # Preview changes without applying
        hireos-sync sync --dry-run

        # Fetch at most 100 contacts
        hireos-sync sync --limit 100

        # Machine-readable output
        hireos-sync sync --json
    """
    logger = get_logger(__name__)
    config = ctx.obj.get("config", {})
    verbose = ctx.obj["verbose"]

    effective_dry_run = dry_run or config.get("dry_run", False)

    try:
        settings = get_settings(ctx)
        client = GHLClient.from_settings(settings)
        db = open_database(ctx)
    except ConfigurationError as e:
        fail(str(e))
    except sqlite3.Error as e:
        fail(f"Could not open database: {e}")

    setup_matching_logger()

    engine = SyncEngine(
        client=client,
        database=db,
        max_records=limit or settings.max_records,
        page_size=page_size or settings.page_size,
        verbose=verbose,
    )

    if not as_json:
        mode = "Previewing" if effective_dry_run else "Synchronizing"
        click.echo(f"{mode} GoHighLevel contacts...")

    result = engine.sync(dry_run=effective_dry_run)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo("\n" + "=" * 50)
        click.echo(result.summary())
        click.echo("=" * 50)
        if result.success:
            show_sync_details(result, verbose=verbose)
        show_errors(result.errors)

    if not result.success:
        logger.error("Sync failed")
        sys.exit(1)

    if not as_json:
        if effective_dry_run:
            click.echo(
                click.style("\nDry run complete. No changes were made.", fg="yellow")
            )
            click.echo("Run without --dry-run to apply these changes.")
        elif result.errors:
            click.echo(
                click.style(
                    f"\nSync completed with {len(result.errors)} errors.", fg="yellow"
                )
            )
        else:
            click.echo(click.style("\nSync completed successfully!", fg="green"))


# =============================================================================
# Analyze-Names Command
# =============================================================================


@cli.command("analyze-names")
@click.option(
    "--limit",
    "-l",
    type=click.IntRange(min=1),
    default=DEFAULT_ANALYZE_LIMIT,
    show_default=True,
    help="GoHighLevel contacts to fetch.",
)
@click.option(
    "--sample",
    "-s",
    type=click.IntRange(min=1),
    default=DEFAULT_SAMPLE_SIZE,
    show_default=True,
    help="Unlinked candidates to analyze.",
)
@click.pass_context
def analyze_names_command(ctx: click.Context, limit: int, sample: int) -> None:
    """
    Explain why candidates don't match GoHighLevel contacts.

    Lists GoHighLevel names and unlinked candidates with their normalized
    keys, then looks for exact and partial name matches. Nothing is written.
    """
    logger = get_logger(__name__)

    try:
        settings = get_settings(ctx)
        client = GHLClient.from_settings(settings)
        db = open_database(ctx)
        remote_contacts = client.fetch_all_contacts(
            page_size=min(settings.page_size, limit), max_records=limit
        )
        candidates = [LocalCandidateRef.from_row(r) for r in db.get_candidates()]
    except (ConfigurationError, GHLAPIError, sqlite3.Error) as e:
        logger.error(f"Analysis failed: {e}")
        fail(f"Analysis failed: {e}")

    analysis = analyze_name_differences(remote_contacts, candidates, sample_size=sample)
    show_name_analysis(analysis)


# =============================================================================
# Token Commands
# =============================================================================


@cli.group("token")
def token_group() -> None:
    """Manage GoHighLevel OAuth tokens."""


def _token_manager(ctx: click.Context) -> TokenManager:
    return TokenManager(open_database(ctx), get_settings(ctx))


@token_group.command("seed")
@click.option("--access-token", required=True, help="Access token from the OAuth exchange.")
@click.option(
    "--refresh-token", required=True, help="Refresh token from the OAuth exchange."
)
@click.option(
    "--expires-in",
    type=click.IntRange(min=0),
    default=None,
    help="Access token lifetime in seconds. Omit to refresh on first use.",
)
@click.option("--company-id", default=None, help="GoHighLevel company id.")
@click.pass_context
def token_seed_command(
    ctx: click.Context,
    access_token: str,
    refresh_token: str,
    expires_in: int | None,
    company_id: str | None,
) -> None:
    """
    Store the initial GoHighLevel token pair.

    Use this after authorizing the app in GoHighLevel, and again whenever a
    refresh fails with a re-authorize message.
    """
    try:
        manager = _token_manager(ctx)
        manager.seed_tokens(
            access_token, refresh_token, expires_in=expires_in, company_id=company_id
        )
    except (ValueError, sqlite3.Error) as e:
        fail(str(e))

    click.echo(click.style("GHL tokens stored.", fg="green"))


@token_group.command("refresh")
@click.pass_context
def token_refresh_command(ctx: click.Context) -> None:
    """Refresh the GoHighLevel access token now."""
    logger = get_logger(__name__)
    try:
        manager = _token_manager(ctx)
        manager.refresh_access_token()
    except (ConfigurationError, TokenError, sqlite3.Error) as e:
        logger.error(f"Token refresh failed: {e}")
        fail(str(e))

    click.echo(click.style("GHL access token refreshed.", fg="green"))
    show_token_status(manager.token_status())


@token_group.command("status")
@click.pass_context
def token_status_command(ctx: click.Context) -> None:
    """Show the stored GoHighLevel token status."""
    try:
        status = _token_manager(ctx).token_status()
    except sqlite3.Error as e:
        fail(str(e))
    show_token_status(status)


# =============================================================================
# Add-To-Workflow Command
# =============================================================================


@cli.command("add-to-workflow")
@click.argument("contact_id")
@click.argument("action")
@click.option(
    "--event-start-time",
    default=None,
    help="ISO-8601 event start time (default: now).",
)
@click.pass_context
def add_to_workflow_command(
    ctx: click.Context, contact_id: str, action: str, event_start_time: str | None
) -> None:
    """
    Add a GoHighLevel contact to the workflow for ACTION.

    ACTION is one of the configured workflow actions, by default
    assessment, interview, offer or reject.

    Example:

        hireos-sync add-to-workflow abc123 interview
    """
    logger = get_logger(__name__)

    try:
        settings = get_settings(ctx)
        http = build_http_client(settings, open_database(ctx))
        workflows = WorkflowClient(http, settings.v2_base_url, settings.workflows)
        response = workflows.add_contact_to_workflow(
            contact_id, action, event_start_time=event_start_time
        )
    except (
        ConfigurationError,
        TokenError,
        WorkflowError,
        GHLAPIError,
        sqlite3.Error,
    ) as e:
        logger.error(f"Workflow trigger failed: {e}")
        fail(str(e))

    click.echo(
        click.style(f"Added contact {contact_id} to {action} workflow.", fg="green")
    )
    if response:
        click.echo(json.dumps(response, indent=2))


# =============================================================================
# Push-Candidate Command
# =============================================================================


@cli.command("push-candidate")
@click.argument("candidate_id", type=int)
@click.option("--status", default=None, help="HireOS status, e.g. interview_scheduled.")
@click.option("--job-title", default=None, help="Job title used for the role tag.")
@click.option("--phone", default=None, help="Phone number to store on the contact.")
@click.option(
    "--create",
    is_flag=True,
    help="Create the contact when the candidate is not linked yet.",
)
@click.pass_context
def push_candidate_command(
    ctx: click.Context,
    candidate_id: int,
    status: str | None,
    job_title: str | None,
    phone: str | None,
    create: bool,
) -> None:
    """
    Push a candidate's name, role and status tags to GoHighLevel.

    Linked candidates update their contact. Unlinked candidates need
    --create, which upserts a contact and links the candidate to it.

    Example:

        hireos-sync push-candidate 42 --status offer_sent --job-title "Senior Auditor"
    """
    logger = get_logger(__name__)

    try:
        settings = get_settings(ctx)
        db = open_database(ctx)
        candidate = db.get_candidate(candidate_id)
    except ConfigurationError as e:
        fail(str(e))
    except sqlite3.Error as e:
        fail(f"Could not open database: {e}")

    if candidate is None:
        fail(f"Candidate {candidate_id} not found")
    candidate.update(
        {
            key: value
            for key, value in (
                ("status", status),
                ("job_title", job_title),
                ("phone", phone),
            )
            if value is not None
        }
    )

    linked = bool(candidate["ghl_contact_id"])
    if not linked and not create:
        fail(
            f"Candidate {candidate_id} is not linked to a GoHighLevel contact; "
            "run sync first or pass --create"
        )

    try:
        http = build_http_client(settings, db)
        if linked:
            push = ContactPushClient(
                http,
                contacts=GHLClient.from_settings(settings),
                base_url=settings.v2_base_url,
            )
            push.update_candidate(candidate)
            contact_id = candidate["ghl_contact_id"]
        else:
            push = ContactPushClient(
                http,
                location_id=settings.require_location_id(),
                base_url=settings.v2_base_url,
            )
            response = push.create_contact(CandidateContact.from_candidate(candidate))
            contact_id = upserted_contact_id(response)
            if contact_id is None:
                fail("GoHighLevel did not return a contact id")
            db.set_candidate_ghl_contact_id(candidate_id, contact_id)
    except (
        ConfigurationError,
        TokenError,
        ContactPushError,
        GHLAPIError,
        sqlite3.Error,
    ) as e:
        logger.error(f"Candidate push failed: {e}")
        fail(str(e))

    verb = "Updated" if linked else "Created"
    click.echo(
        click.style(
            f"{verb} GoHighLevel contact {contact_id} for {candidate['name']}.",
            fg="green",
        )
    )


# =============================================================================
# Import-Candidates Command
# =============================================================================


def load_candidate_rows(csv_path: Path) -> list[dict[str, str | None]]:
    """
    Load candidate rows from a CSV file with ``name`` and ``email`` columns.

    Rows without a name are skipped.

    Raises:
        click.ClickException: If the file has no ``name`` column
    """
    rows: list[dict[str, str | None]] = []
    with open(csv_path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames or "name" not in reader.fieldnames:
            raise click.ClickException(f"{csv_path} has no 'name' column")
        for row in reader:
            name = (row.get("name") or "").strip()
            if not name:
                continue
            email = (row.get("email") or "").strip().lower() or None
            rows.append({"name": name, "email": email})
    return rows


@cli.command("import-candidates")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--dry-run", "-n", is_flag=True, help="Show what would be imported.")
@click.pass_context
def import_candidates_command(ctx: click.Context, csv_file: Path, dry_run: bool) -> None:
    """
    Import candidates from a CSV file.

    The file needs a ``name`` column; ``email`` is optional.
    """
    rows = load_candidate_rows(csv_file)
    click.echo(f"Loaded {len(rows)} candidates from {csv_file}")

    if dry_run:
        for row in rows[:20]:
            click.echo(f"  {row['name']} <{row['email'] or '-'}>")
        click.echo(click.style("\nDry run complete. No changes were made.", fg="yellow"))
        return

    try:
        db = open_database(ctx)
        for row in rows:
            db.add_candidate(row["name"] or "", email=row["email"])
    except sqlite3.Error as e:
        fail(f"Import failed: {e}")

    click.echo(click.style(f"Imported {len(rows)} candidates.", fg="green"))


# =============================================================================
# Status Command
# =============================================================================


@cli.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """
    Show configuration, credential and link status.

    Example:

        hireos-sync status
    """
    config_dir = ctx.obj["config_dir"]
    config_file = ctx.obj["config_file"]
    settings = get_settings(ctx)

    click.echo("=== HireOS GoHighLevel Sync Status ===\n")
    click.echo(f"Configuration directory: {config_dir}")
    config_state = "Found" if config_file.exists() else "Not found (using defaults)"
    click.echo(f"Configuration file: {config_file} ({config_state})")
    click.echo()

    click.echo("Credentials:")
    for name, present in settings.credential_status().items():
        state = (
            click.style("set", fg="green")
            if present
            else click.style("missing", fg="red")
        )
        click.echo(f"  {name}: {state}")
    click.echo()

    try:
        db = open_database(ctx)
        show_token_status(TokenManager(db, settings).token_status())
        counts = db.get_candidate_counts()
    except sqlite3.Error as e:
        fail(str(e))

    click.echo()
    click.echo(f"Database: {db.db_path}")
    click.echo(
        f"Candidates: {counts['total']} "
        f"({counts['linked']} linked, {counts['unlinked']} unlinked)"
    )


# =============================================================================
# Init-Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite existing configuration file if it exists.",
)
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """
    Generate a default configuration file.

    Creates a configuration file with all available options documented
    and commented out.

    Examples:

        hireos-sync init-config
        hireos-sync init-config --force
    """
    config_file = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")
    success, error = save_config_file(config_file, overwrite=force)

    if success:
        click.echo(click.style("Configuration file created successfully!", fg="green"))
        click.echo(f"\nLocation: {config_file}")
        click.echo("\nNext steps:")
        click.echo("1. Edit the file to uncomment and configure desired options")
        click.echo("2. Export GHL_API_KEY and run 'hireos-sync sync --dry-run'")
    else:
        fail(str(error))
