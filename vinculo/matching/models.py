"""Data models for keyword-overlap ranking results."""

from dataclasses import dataclass


@dataclass
class RankedMatch:
    """One candidate on the opposite side, scored by shared keywords.

    Attributes:
        other_id: Id of the capacity (when ranking a challenge) or challenge
        score: Number of distinct keywords shared with the source entity
        matched_keywords: Shared keyword texts, alphabetically sorted, joined by ", "
        summary: Challenge title or capacity description for display
        owner_user_id: Owner of the candidate entity
    """

    other_id: int
    score: int
    matched_keywords: str
    summary: str = ""
    owner_user_id: int = 0

