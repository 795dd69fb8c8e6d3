"""Keyword normalization and storage.

Keywords are stored trimmed and lower-cased. Tokens that are empty or longer
than ``MAX_KEYWORD_LENGTH`` after normalization are dropped silently.
"""

import logging
from typing import List, Optional, Tuple

from vinculo.domain.models import Keyword
from vinculo.logging import get_logger
from vinculo.persistence.repositories import KeywordRepository
from vinculo.persistence.schema import MAX_KEYWORD_LENGTH

logger = get_logger(__name__, component="keywords")


def normalize_keyword(text: Optional[str]) -> Optional[str]:
    """Trim and lower-case a keyword token.

    Returns:
        The normalized token, or None if it is empty or too long

    Example:
        >>> normalize_keyword("  Machine Learning ")
        'machine learning'
        >>> normalize_keyword("   ") is None
        True
    """
    if text is None:
        return None

    normalized = text.strip().lower()
    if not normalized or len(normalized) > MAX_KEYWORD_LENGTH:
        return None

    return normalized


def split_keywords(raw: Optional[str]) -> List[str]:
    """Split comma-separated keyword text into distinct normalized tokens.

    Order of first appearance is preserved so logs and link order are stable.

    Example:
        >>> split_keywords("IA, salud, ia,, Energía ")
        ['ia', 'salud', 'energía']
    """
    if not raw:
        return []

    seen = set()
    tokens = []
    for part in raw.split(","):
        token = normalize_keyword(part)
        if token is None or token in seen:
            continue
        seen.add(token)
        tokens.append(token)

    return tokens


class KeywordStore:
    """Looks up, creates and counts keywords.

    Works inside the caller's session and never commits.
    """

    def __init__(self, keyword_repo: KeywordRepository, logger_instance: Optional[logging.Logger] = None):
        """Initialize KeywordStore.

        Args:
            keyword_repo: KeywordRepository bound to the caller's session
            logger_instance: Logger instance (defaults to module logger)
        """
        self.keyword_repo = keyword_repo
        self.logger = logger_instance or logger

    def resolve(self, text: str, initial_popularity: int = 0) -> Tuple[Keyword, bool]:
        """Return the keyword for ``text``, creating it if absent.

        Args:
            text: Raw or normalized keyword token
            initial_popularity: Counter value for a newly created keyword

        Returns:
            Tuple of (Keyword, created)

        Raises:
            ValueError: If ``text`` does not normalize to a valid keyword
            PersistenceError: If database error occurs
        """
        normalized = normalize_keyword(text)
        if normalized is None:
            raise ValueError(f"Invalid keyword: {text!r}")

        keyword, created = self.keyword_repo.get_or_create(normalized, initial_popularity)

        if created:
            self.logger.debug(
                f"Created keyword '{normalized}'",
                extra={"event": "keyword.created", "keyword_id": keyword.id},
            )

        return keyword, created

    def bump_popularity(self, keyword_id: int) -> None:
        self.keyword_repo.increment_popularity(keyword_id)

    def popular(self, limit: int) -> List[Keyword]:
        """Most popular challenge keywords (popularity > 0), best first."""
        if limit <= 0:
            return []
        return self.keyword_repo.get_most_popular(limit)
