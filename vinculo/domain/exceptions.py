"""Domain exceptions raised by the matching core.

The HTTP layer maps these onto responses: ValidationError -> 400,
AuthorizationError -> 403, NotFoundError -> 404, ConflictError -> 409 and
SystemDisabledError -> a dedicated "feature disabled" message. Anything else
(including persistence failures) is an internal error.
"""


class MatchingError(Exception):
    """Base exception for all matching-core errors."""

    pass


class ValidationError(MatchingError):
    """Caller input is malformed (bad id, empty content, unknown action).

    Raised before any mutation is attempted.
    """

    pass


class NotFoundError(MatchingError):
    """A referenced match, challenge or capacity does not exist."""

    pass


class AuthorizationError(MatchingError):
    """The actor is not a party to the match or does not own the entity."""

    pass


class ForbiddenTransitionError(AuthorizationError):
    """The requested action is not allowed for this actor in the current state."""

    def __init__(self, message: str, action: str = None, state: str = None):
        self.action = action
        self.state = state
        super().__init__(message)


class ConflictError(MatchingError):
    """Duplicate match request, or a transition lost a concurrent race."""

    pass


class SystemDisabledError(MatchingError):
    """The match system toggle is off."""

    def __init__(self, message: str = "The match system is disabled"):
        super().__init__(message)
