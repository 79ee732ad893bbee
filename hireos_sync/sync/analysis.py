"""
Diagnostic comparison of GoHighLevel names against unlinked candidates.

Explains why a sync links fewer candidates than expected by showing, for a
sample of unlinked candidates, whether an exact key exists remotely and which
remote names share a meaningful token. Nothing here feeds the matcher or
writes data.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from rapidfuzz import fuzz

from hireos_sync.sync.contact import LocalCandidateRef, RemoteContact
from hireos_sync.utils.normalization import name_tokens, normalize_name

# Tokens this short ("Al", "Jo", initials) match too much to be useful
MIN_TOKEN_LENGTH = 3

DEFAULT_SAMPLE_SIZE = 10


class MatchKind(Enum):
    """How a sampled candidate relates to the remote names."""

    EXACT = "exact"
    PARTIAL = "partial"
    NONE = "none"


@dataclass
class PartialMatch:
    remote_name: str
    score: float


@dataclass
class CandidateAnalysis:
    """Analysis of one unlinked candidate."""

    candidate_id: int
    candidate_name: str
    normalized: str
    kind: MatchKind
    exact_remote_name: str | None = None
    partial_matches: list[PartialMatch] = field(default_factory=list)


@dataclass
class NameAnalysis:
    """
    Result of analyze_name_differences().

    Attributes:
        remote_names: Unique remote display names, in fetch order
        unlinked: Candidates without a GoHighLevel contact id
        samples: Per-candidate analysis for the sampled candidates
    """

    remote_names: list[str]
    unlinked: list[LocalCandidateRef]
    samples: list[CandidateAnalysis] = field(default_factory=list)

    @property
    def exact_count(self) -> int:
        return sum(1 for s in self.samples if s.kind is MatchKind.EXACT)

    @property
    def partial_count(self) -> int:
        return sum(1 for s in self.samples if s.kind is MatchKind.PARTIAL)

    @property
    def no_match_count(self) -> int:
        return sum(1 for s in self.samples if s.kind is MatchKind.NONE)


def _shares_token(candidate_tokens: list[str], remote_tokens: list[str]) -> bool:
    for c in candidate_tokens:
        if len(c) < MIN_TOKEN_LENGTH:
            continue
        for g in remote_tokens:
            if len(g) >= MIN_TOKEN_LENGTH and (c in g or g in c):
                return True
    return False


def analyze_name_differences(
    remote_contacts: Sequence[RemoteContact],
    candidates: Sequence[LocalCandidateRef],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> NameAnalysis:
    """
    Compare remote names with the first unlinked candidates.

    Args:
        remote_contacts: Contacts fetched from GoHighLevel
        candidates: All local candidates
        sample_size: Number of unlinked candidates to analyze

    Returns:
        NameAnalysis; partial matches are ranked by token_sort_ratio
    """
    remote_names = list(
        dict.fromkeys(c.display_name for c in remote_contacts if c.display_name)
    )
    unlinked = [c for c in candidates if not c.is_linked]

    remote_keys = [(name, normalize_name(name)) for name in remote_names]
    analysis = NameAnalysis(remote_names=remote_names, unlinked=unlinked)

    for candidate in unlinked[:sample_size]:
        normalized = candidate.name_key()
        entry = CandidateAnalysis(
            candidate_id=candidate.id,
            candidate_name=candidate.name,
            normalized=normalized,
            kind=MatchKind.NONE,
        )

        exact = next((name for name, key in remote_keys if key == normalized), None)
        if exact is not None:
            entry.kind = MatchKind.EXACT
            entry.exact_remote_name = exact
        else:
            tokens = name_tokens(candidate.name)
            partials = [
                PartialMatch(name, fuzz.token_sort_ratio(normalized, key))
                for name, key in remote_keys
                if _shares_token(tokens, key.split(" "))
            ]
            if partials:
                partials.sort(key=lambda p: p.score, reverse=True)
                entry.kind = MatchKind.PARTIAL
                entry.partial_matches = partials

        analysis.samples.append(entry)

    return analysis
