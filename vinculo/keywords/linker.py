"""Attach comma-separated keyword text to challenges and capacities."""

import logging
from typing import Optional

from vinculo.domain.models import EntityKind
from vinculo.logging import get_logger
from vinculo.persistence.repositories import KeywordRepository

from .models import LinkSummary
from .store import KeywordStore, split_keywords

logger = get_logger(__name__, component="keywords")


class KeywordLinker:
    """Links keywords to an entity inside the caller's transaction.

    Only a duplicate link is tolerated. Every other failure propagates so the
    caller's session rolls back the entity insert together with its links.
    """

    def __init__(
        self,
        keyword_repo: KeywordRepository,
        store: Optional[KeywordStore] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.keyword_repo = keyword_repo
        self.store = store or KeywordStore(keyword_repo)
        self.logger = logger_instance or logger

    def attach(
        self,
        entity_id: int,
        kind: EntityKind,
        raw_keywords: Optional[str],
        increment_popularity: bool = False,
    ) -> LinkSummary:
        """Resolve every token in ``raw_keywords`` and link it to the entity.

        Popularity rules (challenge links only; capacity links never count):
        - a new keyword starts at 1, otherwise at 0
        - an existing keyword is bumped once when its link to this entity is new
        - a link that already existed changes nothing

        Args:
            entity_id: Challenge or capacity id
            kind: Entity kind of ``entity_id``
            raw_keywords: Comma-separated keyword text (may be empty)
            increment_popularity: Whether links count toward keyword popularity

        Returns:
            LinkSummary with processed/created counts

        Raises:
            DataIntegrityError: If the entity does not exist
            PersistenceError: If database error occurs
        """
        kind = EntityKind(kind)
        increment_popularity = increment_popularity and kind is EntityKind.CHALLENGE
        summary = LinkSummary(entity_id=entity_id, kind=kind)
        initial_popularity = 1 if increment_popularity else 0

        for token in split_keywords(raw_keywords):
            keyword, created = self.store.resolve(token, initial_popularity=initial_popularity)
            summary.tokens_processed += 1
            if created:
                summary.keywords_created += 1

            linked = self.keyword_repo.add_link(kind, entity_id, keyword.id)
            if not linked:
                continue

            summary.links_created += 1
            if increment_popularity and not created:
                self.store.bump_popularity(keyword.id)

        self.logger.info(
            f"Linked {summary.links_created} keyword(s) to {kind.value} {entity_id}",
            extra={
                "event": "keywords.linked",
                "entity_kind": kind.value,
                "entity_id": entity_id,
                "tokens_processed": summary.tokens_processed,
                "keywords_created": summary.keywords_created,
                "links_created": summary.links_created,
                "links_skipped": summary.links_skipped,
            },
        )

        return summary
