"""
Guest identity generation for the anonymous endpoint.

Names look like "Guest-7QX2": a fixed prefix and a random suffix drawn from
a fixed character set. Uniqueness against the names currently online is
soft: after max_attempts collisions the last candidate is used anyway.
"""

from __future__ import annotations

import secrets
import uuid
from typing import Callable, Iterable

from chat_gateway.components.connection.registry import Identity
from shared.config.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CHARSET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


class GuestNameGenerator:
    """Bounded-attempts guest name generator."""

    def __init__(
        self,
        prefix: str = "Guest",
        suffix_length: int = 4,
        charset: str = DEFAULT_CHARSET,
        max_attempts: int = 32,
        choice: Callable[[str], str] = secrets.choice,
    ) -> None:
        if suffix_length < 1:
            raise ValueError("suffix_length must be at least 1")
        if not charset:
            raise ValueError("charset must not be empty")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.prefix = prefix
        self.suffix_length = suffix_length
        self.charset = charset
        self.max_attempts = max_attempts
        self._choice = choice

    def candidate(self) -> str:
        suffix = "".join(self._choice(self.charset) for _ in range(self.suffix_length))
        return f"{self.prefix}-{suffix}"

    def generate(self, taken: Iterable[str]) -> str:
        """Return a name not in `taken`, or the last candidate once attempts run out."""
        taken_names = set(taken)
        name = self.candidate()
        attempts = 1
        while name in taken_names and attempts < self.max_attempts:
            name = self.candidate()
            attempts += 1

        if name in taken_names:
            logger.warning(
                "Guest name collision accepted after max attempts",
                name=name,
                attempts=attempts,
                online=len(taken_names),
            )
        return name

    def new_identity(self, taken: Iterable[str]) -> Identity:
        """Fresh guest identity with a random id and a generated name."""
        return Identity(id=uuid.uuid4().hex, display_name=self.generate(taken))
