"""
Sync engine linking HireOS candidates to GoHighLevel contacts.

Fetches contacts from GoHighLevel, matches them to local candidates by
normalized name, and records the GoHighLevel contact id on each matching
candidate that isn't linked yet. Existing links are never overwritten.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Optional

from hireos_sync.api.ghl_client import GHLAPIError, GHLClient
from hireos_sync.config.settings import DEFAULT_MAX_RECORDS, DEFAULT_PAGE_SIZE
from hireos_sync.storage.db import SyncDatabase
from hireos_sync.sync.contact import LocalCandidateRef, RemoteContact
from hireos_sync.sync.matcher import ContactMatcher
from hireos_sync.utils.logging import get_matching_logger

logger = logging.getLogger(__name__)


class SyncAction:
    """Outcome recorded for a matched contact."""

    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


DRY_RUN_REASON = "would update (dry run)"
LINKED_REASON = "linked to GoHighLevel contact"
ALREADY_LINKED_REASON = "already linked"


@dataclass
class SyncDetail:
    """One matched remote contact and what happened to it."""

    remote_id: str
    remote_name: str
    local_name: str
    action: str
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "remoteId": self.remote_id,
            "remoteName": self.remote_name,
            "localName": self.local_name,
            "action": self.action,
            "reason": self.reason,
        }


@dataclass
class SyncResult:
    """
    Result of a sync run.

    Per-record errors are collected in ``errors`` and do not flip
    ``success``; only a failed fetch does.
    """

    success: bool = False
    total_remote: int = 0
    total_local: int = 0
    matched: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    details: list[SyncDetail] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase shape served to the HireOS frontend."""
        return {
            "success": self.success,
            "totalRemote": self.total_remote,
            "totalLocal": self.total_local,
            "matched": self.matched,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "details": [d.to_dict() for d in self.details],
            "dryRun": self.dry_run,
        }

    def summary(self) -> str:
        """
        Generate a human-readable summary of the sync result.

        Returns:
            Formatted multi-line summary
        """
        mode = " (dry run)" if self.dry_run else ""
        lines = [
            f"Sync Summary{mode}:",
            f"  GoHighLevel contacts: {self.total_remote}",
            f"  Local candidates: {self.total_local}",
            f"  Matched: {self.matched}",
            f"  {'Would update' if self.dry_run else 'Updated'}: {self.updated}",
            f"  Skipped: {self.skipped}",
        ]
        if self.errors:
            lines.append(f"  Errors: {len(self.errors)}")
        return "\n".join(lines)


class SyncEngine:
    """
    One-way link sync from GoHighLevel contacts to HireOS candidates.

    Usage:
        engine = SyncEngine(
            client=GHLClient(api_key),
            database=SyncDatabase('/path/to/hireos.db'),
        )

        # Preview
        result = engine.preview()
        print(result.summary())

        # Apply
        result = engine.execute()
    """

    def __init__(
        self,
        client: GHLClient,
        database: SyncDatabase,
        max_records: int = DEFAULT_MAX_RECORDS,
        page_size: int = DEFAULT_PAGE_SIZE,
        verbose: bool = False,
        matcher: Optional[ContactMatcher] = None,
    ):
        """
        Initialize the sync engine.

        Args:
            client: GoHighLevel v1 client
            database: Candidate storage
            max_records: Maximum contacts fetched per run (default 300)
            page_size: Contacts per page (default 20)
            verbose: Log every detail at INFO instead of DEBUG
            matcher: Optional ContactMatcher
        """
        self.client = client
        self.database = database
        self.max_records = max_records
        self.page_size = page_size
        self.verbose = verbose
        self.matcher = matcher or ContactMatcher()

    def preview(self) -> SyncResult:
        """Run the sync without writing any links."""
        return self.sync(dry_run=True)

    def execute(self) -> SyncResult:
        """Run the sync and persist new links."""
        return self.sync(dry_run=False)

    def _log_detail(self, detail: SyncDetail) -> None:
        level = logging.INFO if self.verbose else logging.DEBUG
        logger.log(
            level,
            f"{detail.action.upper()}: {detail.remote_name!r} -> "
            f"{detail.local_name!r} ({detail.reason})",
        )

    def _load_candidates(self) -> list[LocalCandidateRef]:
        return [LocalCandidateRef.from_row(row) for row in self.database.get_candidates()]

    def sync(self, dry_run: bool = False) -> SyncResult:
        """
        Perform a complete sync run.

        Args:
            dry_run: If True, report what would be linked without writing

        Returns:
            SyncResult describing every matched contact
        """
        result = SyncResult(dry_run=dry_run)
        matching_logger = get_matching_logger()
        matching_logger.info(f"Sync run started: dry_run={dry_run}")
        logger.info(f"Starting GoHighLevel sync (dry_run={dry_run})")

        try:
            remote_contacts = self.client.fetch_all_contacts(
                page_size=self.page_size, max_records=self.max_records
            )
        except GHLAPIError as e:
            logger.error(f"Fetching GoHighLevel contacts failed: {e}")
            result.errors.append(f"Sync failed: {e}")
            return result

        try:
            candidates = self._load_candidates()
        except sqlite3.Error as e:
            logger.error(f"Loading candidates failed: {e}")
            result.errors.append(f"Sync failed: {e}")
            return result

        result.total_remote = len(remote_contacts)
        result.total_local = len(candidates)

        duplicates = self.matcher.duplicate_keys(remote_contacts)
        if duplicates:
            names = ", ".join(f"{key!r} x{count}" for key, count in duplicates.items())
            logger.warning(
                f"Duplicate GoHighLevel names, first contact wins: {names}"
            )

        index = self.matcher.build_index(candidates)
        # candidate id -> remote id that linked it during this run
        linked_this_run: dict[int, str] = {}

        for remote in remote_contacts:
            if not remote.name_key():
                continue

            candidate = self.matcher.find_match(remote, candidates, index=index)
            if candidate is None:
                continue

            result.matched += 1
            detail = self._apply(remote, candidate, dry_run, linked_this_run, result)
            result.details.append(detail)
            self._log_detail(detail)

        result.success = True
        logger.info(
            f"Sync complete: {result.total_remote} remote, {result.total_local} "
            f"local, {result.matched} matched, {result.updated} updated, "
            f"{result.skipped} skipped, {len(result.errors)} errors"
        )
        matching_logger.info(
            f"Sync run finished: matched={result.matched} updated={result.updated} "
            f"skipped={result.skipped}"
        )
        return result

    def _apply(
        self,
        remote: RemoteContact,
        candidate: LocalCandidateRef,
        dry_run: bool,
        linked_this_run: dict[int, str],
        result: SyncResult,
    ) -> SyncDetail:
        detail = SyncDetail(
            remote_id=remote.id,
            remote_name=remote.display_name or "",
            local_name=candidate.name,
            action=SyncAction.SKIPPED,
        )

        if candidate.is_linked:
            result.skipped += 1
            source = linked_this_run.get(candidate.id)
            if source is not None:
                detail.reason = (
                    f"{ALREADY_LINKED_REASON} (by contact {source} earlier in this run)"
                )
            else:
                detail.reason = ALREADY_LINKED_REASON
            return detail

        if dry_run:
            detail.action = SyncAction.UPDATED
            detail.reason = DRY_RUN_REASON
        else:
            try:
                written = self.database.set_candidate_ghl_contact_id(
                    candidate.id, remote.id
                )
            except sqlite3.Error as e:
                message = f"Failed to update candidate {candidate.id}: {e}"
                logger.error(message)
                return self._record_error(detail, message, result)

            if not written:
                message = (
                    f"Failed to update candidate {candidate.id}: "
                    "candidate missing or already linked"
                )
                logger.warning(message)
                return self._record_error(detail, message, result)

            detail.action = SyncAction.UPDATED
            detail.reason = LINKED_REASON

        result.updated += 1
        candidate.remote_contact_id = remote.id
        linked_this_run[candidate.id] = remote.id
        return detail

    @staticmethod
    def _record_error(
        detail: SyncDetail, message: str, result: SyncResult
    ) -> SyncDetail:
        detail.action = SyncAction.ERROR
        detail.reason = message
        result.errors.append(message)
        return detail
