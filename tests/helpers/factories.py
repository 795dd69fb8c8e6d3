"""Seed helpers that create challenges, capacities and matches through the facade."""

from typing import Optional

from vinculo.domain.models import Actor, Capacity, Challenge, MatchAction
from vinculo.service import MatchingService


def make_challenge(
    service: MatchingService,
    owner: Actor,
    keywords: Optional[str] = None,
    title: str = "Tratamiento de aguas residuales",
    **fields,
) -> Challenge:
    return service.create_challenge(owner, {"title": title, **fields}, keywords)


def make_capacity(
    service: MatchingService,
    owner: Actor,
    keywords: Optional[str] = None,
    description: str = "Laboratorio de biotecnología ambiental",
    **fields,
) -> Capacity:
    return service.create_capacity(owner, {"description": description, **fields}, keywords)


def make_accepted_match(
    service: MatchingService, externo: Actor, unsa: Actor, keywords: str = "agua"
) -> int:
    """Create a challenge/capacity pair, request a match as externo and accept it as unsa.

    The match system must already be enabled.
    """
    challenge = make_challenge(service, externo, keywords)
    capacity = make_capacity(service, unsa, keywords)
    match_id = service.create_match(challenge.id, capacity.id, externo)
    service.transition_match(match_id, MatchAction.ACEPTAR, unsa)
    return match_id
