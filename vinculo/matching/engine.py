"""Keyword-overlap ranking between challenges and capacities.

This module implements the read-only matching logic that:
1. Collects (candidate, shared keyword) pairs through the two link tables
2. Scores each candidate by its count of distinct shared keywords
3. Orders candidates by score descending, then id ascending
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Set

from vinculo.domain.models import EntityKind
from vinculo.logging import get_logger
from vinculo.persistence.repositories import (
    CapacityRepository,
    ChallengeRepository,
    KeywordRepository,
)

from .models import RankedMatch

logger = get_logger(__name__, component="matching")


class MatchFinder:
    """Ranks the opposite side's entities by exact keyword overlap.

    Responsibilities:
    - Rank capacities for a challenge and challenges for a capacity
    - Build the alphabetical matched-keywords string
    - Attach a display summary and owner for each candidate
    - Truncate to ``max_results`` after ordering (0 means unlimited)

    Never writes and takes no locks.
    """

    def __init__(
        self,
        keyword_repo: KeywordRepository,
        challenge_repo: ChallengeRepository,
        capacity_repo: CapacityRepository,
        max_results: int = 0,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize MatchFinder.

        Args:
            keyword_repo: KeywordRepository for link-table overlap queries
            challenge_repo: ChallengeRepository for challenge summaries
            capacity_repo: CapacityRepository for capacity summaries
            max_results: Maximum candidates returned (0 = unlimited)
            logger_instance: Optional logger instance (defaults to module logger)
        """
        self.keyword_repo = keyword_repo
        self.challenge_repo = challenge_repo
        self.capacity_repo = capacity_repo
        self.max_results = max_results
        self.logger = logger_instance or logger

    def find_capacities_for_challenge(self, challenge_id: int) -> List[RankedMatch]:
        """Capacities sharing keywords with a challenge, best first."""
        return self.rank(challenge_id, EntityKind.CHALLENGE)

    def find_challenges_for_capacity(self, capacity_id: int) -> List[RankedMatch]:
        """Challenges sharing keywords with a capacity, best first."""
        return self.rank(capacity_id, EntityKind.CAPACITY)

    def rank(self, entity_id: int, kind: EntityKind) -> List[RankedMatch]:
        """Rank candidates of the opposite kind for one entity.

        An unknown entity has no links, so it ranks like an entity with no
        overlap: an empty list.

        Args:
            entity_id: Source challenge or capacity id
            kind: Kind of the source entity

        Returns:
            RankedMatch list ordered by score desc, then id asc

        Raises:
            PersistenceError: If database error occurs
        """
        kind = EntityKind(kind)
        pairs = self.keyword_repo.find_shared_keywords(kind, entity_id)

        shared: Dict[int, Set[str]] = defaultdict(set)
        for other_id, keyword_text in pairs:
            shared[other_id].add(keyword_text)

        if not shared:
            self.logger.debug(
                f"No keyword overlap for {kind.value} {entity_id}",
                extra={"event": "matching.ranked", "entity_kind": kind.value, "entity_id": entity_id, "result_count": 0},
            )
            return []

        ordered_ids = sorted(shared, key=lambda other_id: (-len(shared[other_id]), other_id))
        if self.max_results and self.max_results > 0:
            ordered_ids = ordered_ids[: self.max_results]

        summaries = self._summaries(kind.opposite, ordered_ids)

        results = []
        for other_id in ordered_ids:
            summary, owner_user_id = summaries.get(other_id, ("", 0))
            results.append(
                RankedMatch(
                    other_id=other_id,
                    score=len(shared[other_id]),
                    matched_keywords=", ".join(sorted(shared[other_id])),
                    summary=summary or "",
                    owner_user_id=owner_user_id,
                )
            )

        self.logger.debug(
            f"Ranked {len(results)} candidate(s) for {kind.value} {entity_id}",
            extra={
                "event": "matching.ranked",
                "entity_kind": kind.value,
                "entity_id": entity_id,
                "result_count": len(results),
                "best_score": results[0].score,
            },
        )

        return results

    def _summaries(self, kind: EntityKind, ids: List[int]):
        if kind is EntityKind.CHALLENGE:
            return self.challenge_repo.get_summaries(ids)
        return self.capacity_repo.get_summaries(ids)
