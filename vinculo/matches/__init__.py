"""Match requests: lifecycle, system toggle and messaging.

This module provides:
- MatchLifecycle: creation and role-gated state transitions
- TRANSITIONS: the (action, state, role) transition table
- SystemToggle: the matches_enabled flag and its gate
- MatchMessaging: message threads of accepted matches
"""

from .lifecycle import TRANSITIONS, MatchLifecycle, TransitionRule
from .messaging import MatchMessaging
from .toggle import SystemToggle

__all__ = [
    "MatchLifecycle",
    "MatchMessaging",
    "SystemToggle",
    "TRANSITIONS",
    "TransitionRule",
]
