"""Keyword normalization, storage and entity linking.

This module provides:
- normalize_keyword / split_keywords: token normalization helpers
- KeywordStore: keyword lookup/creation and the challenge popularity counter
- KeywordLinker: attaches keyword text to a challenge or capacity
- LinkSummary: counts reported by a linking run
"""

from .linker import KeywordLinker
from .models import LinkSummary
from .store import KeywordStore, normalize_keyword, split_keywords

__all__ = [
    "KeywordLinker",
    "KeywordStore",
    "LinkSummary",
    "normalize_keyword",
    "split_keywords",
]
