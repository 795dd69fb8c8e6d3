"""The global ``matches_enabled`` switch.

A missing settings row reads as disabled. The flag is read from the database
on every call.
"""

import logging
from typing import Optional

from vinculo.domain.exceptions import SystemDisabledError
from vinculo.domain.models import Actor
from vinculo.logging import get_logger
from vinculo.persistence.repositories import SettingsRepository
from vinculo.persistence.schema import MATCHES_ENABLED_KEY

logger = get_logger(__name__, component="toggle")

ENABLED_VALUE = "1"
DISABLED_VALUE = "0"
_TRUTHY_VALUES = {"1", "true"}


class SystemToggle:
    """Reads and writes the match-system flag and gates callers on it."""

    def __init__(self, settings_repo: SettingsRepository, logger_instance: Optional[logging.Logger] = None):
        self.settings_repo = settings_repo
        self.logger = logger_instance or logger

    def get_enabled(self) -> bool:
        value = self.settings_repo.get_value(MATCHES_ENABLED_KEY)
        if value is None:
            return False
        return value in _TRUTHY_VALUES

    def set_enabled(self, enabled: bool) -> None:
        """Persist the flag, creating the settings row if needed."""
        self.settings_repo.set_value(MATCHES_ENABLED_KEY, ENABLED_VALUE if enabled else DISABLED_VALUE)
        self.logger.info(
            f"Match system {'enabled' if enabled else 'disabled'}",
            extra={"event": "system.toggle.updated", "enabled": enabled},
        )

    def assert_enabled(self, actor: Optional[Actor] = None, bypass_for_admin: bool = False) -> None:
        """Raise SystemDisabledError unless the system is on.

        Args:
            actor: Caller, consulted only when ``bypass_for_admin`` is set
            bypass_for_admin: Let an admin through while disabled. Only
                read-only match lookups pass this.

        Raises:
            SystemDisabledError: If the flag is off and no bypass applies
        """
        if self.get_enabled():
            return

        if bypass_for_admin and actor is not None and actor.is_admin:
            self.logger.debug(
                "Match system disabled, admin bypass applied",
                extra={"event": "system.toggle.bypassed", "actor_user_id": actor.user_id},
            )
            return

        raise SystemDisabledError()
