"""Keyword-overlap ranking between challenges and capacities.

This module provides:
- RankedMatch: one scored candidate on the opposite side
- MatchFinder: read-only ranking service
"""

from .engine import MatchFinder
from .models import RankedMatch

__all__ = [
    "MatchFinder",
    "RankedMatch",
]
