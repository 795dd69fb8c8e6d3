"""Match request state machine.

Allowed transitions are data in ``TRANSITIONS``, keyed by
``(action, current_state, actor_role)``. Each rule names the resulting state
and which party of the match may perform it.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from vinculo.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    ForbiddenTransitionError,
    NotFoundError,
)
from vinculo.domain.models import Actor, MatchAction, MatchRequest, MatchState, Role
from vinculo.logging import get_logger, log_context
from vinculo.persistence.exceptions import DuplicateRecordError
from vinculo.persistence.repositories import (
    CapacityRepository,
    ChallengeRepository,
    MatchRepository,
)
from vinculo.utils.timestamps import utc_now

from .toggle import SystemToggle

logger = get_logger(__name__, component="lifecycle")

REQUESTER = "requester"
RECIPIENT = "recipient"


@dataclass(frozen=True)
class TransitionRule:
    """Result of an allowed transition and the party entitled to trigger it."""

    new_state: MatchState
    party: str


def _build_transitions() -> Dict[Tuple[MatchAction, MatchState, Role], TransitionRule]:
    table = {
        (MatchAction.ACEPTAR, MatchState.PENDIENTE_UNSA, Role.UNSA): TransitionRule(
            MatchState.ACEPTADO, RECIPIENT
        ),
        (MatchAction.ACEPTAR, MatchState.PENDIENTE_EXTERNO, Role.EXTERNO): TransitionRule(
            MatchState.ACEPTADO, RECIPIENT
        ),
        (MatchAction.RECHAZAR, MatchState.PENDIENTE_UNSA, Role.UNSA): TransitionRule(
            MatchState.RECHAZADO_UNSA, RECIPIENT
        ),
        (MatchAction.RECHAZAR, MatchState.PENDIENTE_EXTERNO, Role.EXTERNO): TransitionRule(
            MatchState.RECHAZADO_EXTERNO, RECIPIENT
        ),
    }
    # The requester may withdraw a pending request whatever their role
    for state in (MatchState.PENDIENTE_UNSA, MatchState.PENDIENTE_EXTERNO):
        for role in Role:
            table[(MatchAction.CANCELAR, state, role)] = TransitionRule(MatchState.CANCELADO, REQUESTER)
    return table


TRANSITIONS = _build_transitions()

# Initial state and the entity the requester must own, per requester role
_CREATION_RULES = {
    Role.EXTERNO: MatchState.PENDIENTE_UNSA,
    Role.UNSA: MatchState.PENDIENTE_EXTERNO,
}


class MatchLifecycle:
    """Creates match requests and moves them through their states.

    Responsibilities:
    - Check the system toggle before anything else
    - Validate ownership of the referenced challenge/capacity on creation
    - Apply role-gated transitions with an optimistic state check
    - Serve party/admin reads of match requests
    """

    def __init__(
        self,
        match_repo: MatchRepository,
        challenge_repo: ChallengeRepository,
        capacity_repo: CapacityRepository,
        toggle: SystemToggle,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.match_repo = match_repo
        self.challenge_repo = challenge_repo
        self.capacity_repo = capacity_repo
        self.toggle = toggle
        self.logger = logger_instance or logger

    def create(self, challenge_id: int, capacity_id: int, actor: Actor) -> int:
        """Open a match request between a challenge and a capacity.

        An ``externo`` requester must own the challenge and the capacity owner
        becomes the recipient; an ``unsa`` requester must own the capacity and
        the challenge owner becomes the recipient.

        Args:
            challenge_id: Challenge to pair
            capacity_id: Capacity to pair
            actor: Requesting user

        Returns:
            Id of the new match request

        Raises:
            SystemDisabledError: If the match system is off (no admin bypass)
            AuthorizationError: If the role may not request or the actor does
                not own the entity on their side
            NotFoundError: If the challenge or capacity does not exist
            ConflictError: If the pair was ever requested before
        """
        self.toggle.assert_enabled()

        with log_context(actor_user_id=actor.user_id, actor_role=actor.role.value):
            initial_state = _CREATION_RULES.get(actor.role)
            if initial_state is None:
                raise AuthorizationError(f"Role '{actor.role.value}' cannot request matches")

            challenge_owner = self.challenge_repo.get_owner_user_id(challenge_id)
            if challenge_owner is None:
                raise NotFoundError(f"Challenge {challenge_id} not found")

            capacity_owner = self.capacity_repo.get_owner_user_id(capacity_id)
            if capacity_owner is None:
                raise NotFoundError(f"Capacity {capacity_id} not found")

            if actor.role is Role.EXTERNO:
                if challenge_owner != actor.user_id:
                    raise AuthorizationError(f"User {actor.user_id} does not own challenge {challenge_id}")
                recipient_user_id = capacity_owner
            else:
                if capacity_owner != actor.user_id:
                    raise AuthorizationError(f"User {actor.user_id} does not own capacity {capacity_id}")
                recipient_user_id = challenge_owner

            try:
                match = self.match_repo.add(
                    challenge_id=challenge_id,
                    capacity_id=capacity_id,
                    requester_user_id=actor.user_id,
                    recipient_user_id=recipient_user_id,
                    state=initial_state,
                    created_at=utc_now(),
                )
            except DuplicateRecordError as e:
                self.logger.info(
                    f"Duplicate match request for challenge {challenge_id} and capacity {capacity_id}",
                    extra={
                        "event": "match.duplicate",
                        "challenge_id": challenge_id,
                        "capacity_id": capacity_id,
                    },
                )
                raise ConflictError(
                    f"A match request for challenge {challenge_id} and capacity {capacity_id} already exists"
                ) from e

            self.logger.info(
                f"Match request {match.id} created",
                extra={
                    "event": "match.created",
                    "match_id": match.id,
                    "challenge_id": challenge_id,
                    "capacity_id": capacity_id,
                    "recipient_user_id": recipient_user_id,
                    "state": initial_state.value,
                },
            )
            return match.id

    def transition(self, match_id: int, action: MatchAction, actor: Actor) -> MatchState:
        """Apply an action to a match request.

        The update only succeeds while the row still holds the state that was
        read, so of two concurrent transitions exactly one wins.

        Args:
            match_id: Match request id
            action: Action to perform
            actor: Acting user

        Returns:
            The new state

        Raises:
            SystemDisabledError: If the match system is off
            NotFoundError: If the match does not exist (or vanished mid-call)
            ForbiddenTransitionError: If actor, role or state do not allow the action
            ConflictError: If another transition changed the state first
        """
        self.toggle.assert_enabled()
        action = MatchAction(action)

        with log_context(match_id=match_id, actor_user_id=actor.user_id, actor_role=actor.role.value):
            match = self.match_repo.get(match_id)
            if match is None:
                raise NotFoundError(f"Match {match_id} not found")

            rule = TRANSITIONS.get((action, match.state, actor.role))
            if rule is None:
                raise ForbiddenTransitionError(
                    f"Cannot '{action.value}' a match in state '{match.state.value}' "
                    f"with role '{actor.role.value}'",
                    action=action.value,
                    state=match.state.value,
                )

            entitled_user_id = (
                match.recipient_user_id if rule.party == RECIPIENT else match.requester_user_id
            )
            if actor.user_id != entitled_user_id:
                raise ForbiddenTransitionError(
                    f"Only the {rule.party} may '{action.value}' match {match_id}",
                    action=action.value,
                    state=match.state.value,
                )

            updated = self.match_repo.update_state(match_id, match.state, rule.new_state, utc_now())
            if updated == 0:
                current = self.match_repo.get(match_id)
                if current is None:
                    raise NotFoundError(f"Match {match_id} no longer exists")
                self.logger.info(
                    f"Transition of match {match_id} lost to a concurrent update",
                    extra={
                        "event": "match.transition.conflict",
                        "expected_state": match.state.value,
                        "current_state": current.state.value,
                    },
                )
                raise ConflictError(
                    f"Match {match_id} changed state to '{current.state.value}' concurrently"
                )

            self.logger.info(
                f"Match {match_id} moved from {match.state.value} to {rule.new_state.value}",
                extra={
                    "event": "match.transitioned",
                    "action": action.value,
                    "from_state": match.state.value,
                    "to_state": rule.new_state.value,
                },
            )
            return rule.new_state

    def get(self, match_id: int, actor: Actor) -> MatchRequest:
        """Read one match as a party or an admin.

        Admins may read while the system is disabled.

        Raises:
            SystemDisabledError: If the system is off and the actor is not admin
            NotFoundError: If the match does not exist
            AuthorizationError: If the actor is neither a party nor an admin
        """
        self.toggle.assert_enabled(actor, bypass_for_admin=True)

        match = self.match_repo.get(match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")

        if not actor.is_admin and not match.is_party(actor.user_id):
            raise AuthorizationError(f"User {actor.user_id} is not a party to match {match_id}")

        return match

    def list_for_user(self, actor: Actor) -> List[MatchRequest]:
        """Matches where the actor is requester or recipient, newest update first."""
        self.toggle.assert_enabled(actor, bypass_for_admin=True)
        return self.match_repo.list_for_user(actor.user_id)

    def list_all(self, actor: Actor) -> List[MatchRequest]:
        """Every match request, for administrators."""
        if not actor.is_admin:
            raise AuthorizationError("Only administrators can list all matches")
        self.toggle.assert_enabled(actor, bypass_for_admin=True)
        return self.match_repo.list_all()
