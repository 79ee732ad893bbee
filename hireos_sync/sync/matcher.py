"""
Exact name matching between GoHighLevel contacts and HireOS candidates.

Both sides are reduced to a normalized name key (see
hireos_sync.utils.normalization) and compared for equality. There is no
fuzzy tier here; similarity scoring lives in hireos_sync.sync.analysis and
is diagnostic only.
"""

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Optional

from hireos_sync.sync.contact import LocalCandidateRef, RemoteContact
from hireos_sync.utils.logging import get_matching_logger

logger = logging.getLogger(__name__)


class ContactMatcher:
    """
    Matches remote contacts to local candidates by normalized name.

    Candidate keys are computed once per call; list order decides which
    candidate wins when several share a key.

    Usage:
        matcher = ContactMatcher()
        candidate = matcher.find_match(remote, candidates)
        mapping = matcher.match(remote_contacts, candidates)
    """

    def __init__(self) -> None:
        self.matching_logger = get_matching_logger()

    @staticmethod
    def _index(candidates: Iterable[LocalCandidateRef]) -> dict[str, LocalCandidateRef]:
        index: dict[str, LocalCandidateRef] = {}
        for candidate in candidates:
            key = candidate.name_key()
            if key and key not in index:
                index[key] = candidate
        return index

    def find_match(
        self,
        remote: RemoteContact,
        candidates: Sequence[LocalCandidateRef],
        index: Optional[dict[str, LocalCandidateRef]] = None,
    ) -> Optional[LocalCandidateRef]:
        """
        Find the first candidate whose normalized name equals the contact's.

        Args:
            remote: GoHighLevel contact
            candidates: Local candidates, in priority order
            index: Precomputed key index from a previous call, if any

        Returns:
            The matching candidate, or None
        """
        key = remote.name_key()
        if not key:
            self.matching_logger.debug(f"SKIP {remote.id}: empty name")
            return None

        if index is None:
            index = self._index(candidates)

        candidate = index.get(key)
        if candidate is None:
            self.matching_logger.debug(
                f"NO MATCH {remote.id} {remote.display_name!r} (key={key!r})"
            )
        else:
            self.matching_logger.info(
                f"MATCH {remote.id} {remote.display_name!r} -> candidate "
                f"{candidate.id} {candidate.name!r} (key={key!r})"
            )
        return candidate

    def build_index(
        self, candidates: Sequence[LocalCandidateRef]
    ) -> dict[str, LocalCandidateRef]:
        """Build the key index reused across find_match() calls."""
        return self._index(candidates)

    def match(
        self,
        remote_contacts: Sequence[RemoteContact],
        candidates: Sequence[LocalCandidateRef],
    ) -> dict[str, int]:
        """
        Map remote contact ids to matching candidate ids.

        Contacts with an empty name or no match are left out.
        """
        index = self._index(candidates)
        mapping: dict[str, int] = {}
        for remote in remote_contacts:
            candidate = self.find_match(remote, candidates, index=index)
            if candidate is not None:
                mapping[remote.id] = candidate.id
        return mapping

    @staticmethod
    def duplicate_keys(remote_contacts: Iterable[RemoteContact]) -> dict[str, int]:
        """
        Count normalized name keys shared by more than one remote contact.

        Returns:
            Mapping of key -> number of contacts carrying it
        """
        counts = Counter(c.name_key() for c in remote_contacts)
        return {key: n for key, n in counts.items() if key and n > 1}
