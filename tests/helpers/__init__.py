"""Test helper utilities for vinculo tests."""

from .factories import make_accepted_match, make_capacity, make_challenge

__all__ = ["make_accepted_match", "make_capacity", "make_challenge"]
