"""Candidate retrieval over the item index."""

from capsearch.search.candidate_source import (
    Candidate,
    CandidateSource,
    IndexCandidateSource,
    SearchFilters,
)

__all__ = [
    "Candidate",
    "CandidateSource",
    "IndexCandidateSource",
    "SearchFilters",
]
