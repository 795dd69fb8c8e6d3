"""Soft checks on raw configuration that warn instead of failing."""

import warnings
from typing import Any, Dict, List

KNOWN_SECTIONS = ("logging", "matching", "messaging")


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    matching = config_dict.get("matching", {})
    if isinstance(matching, dict):
        max_results = matching.get("max_results", 0)
        if isinstance(max_results, int) and 0 < max_results < 5:
            warning_messages.append(
                f"Small matching.max_results ({max_results}) hides most ranked candidates"
            )

    messaging = config_dict.get("messaging", {})
    if isinstance(messaging, dict):
        max_length = messaging.get("max_content_length", 2000)
        if isinstance(max_length, int) and max_length > 10000:
            warning_messages.append(
                f"Large messaging.max_content_length ({max_length}) allows very long messages"
            )

    logging_section = config_dict.get("logging", {})
    if isinstance(logging_section, dict):
        level = logging_section.get("level")
        if isinstance(level, str) and level.upper() == "DEBUG":
            warning_messages.append("DEBUG logging is verbose and logs SQL statements")

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
