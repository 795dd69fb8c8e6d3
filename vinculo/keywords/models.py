"""Data models for keyword linking results."""

from dataclasses import dataclass

from vinculo.domain.models import EntityKind


@dataclass
class LinkSummary:
    """Counts produced by attaching a keyword string to one entity.

    Attributes:
        entity_id: Challenge or capacity the keywords were attached to
        kind: Which of the two entity kinds ``entity_id`` refers to
        tokens_processed: Distinct valid tokens after normalization
        keywords_created: Tokens that did not exist as keywords before
        links_created: New link rows (already-linked tokens are not counted)
    """

    entity_id: int
    kind: EntityKind
    tokens_processed: int = 0
    keywords_created: int = 0
    links_created: int = 0

    @property
    def links_skipped(self) -> int:
        return self.tokens_processed - self.links_created
