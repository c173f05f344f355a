"""Initialize/destroy lifecycle shared by plugins, the resolver, the registry and transcoders."""

from __future__ import annotations

import unicodedata

from idp_engine.errors import (
    DestroyedComponentError,
    InvalidIdentifierError,
    UninitializedComponentError,
    UnmodifiableComponentError,
)


def validate_identifier(value: str | None, kind: str = "identifier") -> str:
    """Trim and validate a component identifier.

    Identifiers must be non-empty after trimming and may not contain whitespace
    or control characters.
    """
    trimmed = (value or "").strip()
    if not trimmed:
        raise InvalidIdentifierError(f"{kind} cannot be empty")
    for ch in trimmed:
        if ch.isspace() or unicodedata.category(ch).startswith("C"):
            raise InvalidIdentifierError(f"{kind} {trimmed!r} contains whitespace or control characters")
    return trimmed


class InitializableComponent:
    """Two-phase component: configure, ``initialize()`` once, then read-only use."""

    def __init__(self) -> None:
        self._initialized = False
        self._destroyed = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def initialize(self) -> None:
        if self._destroyed:
            raise DestroyedComponentError(f"{self._describe()} has been destroyed")
        if self._initialized:
            return
        self._do_initialize()
        self._initialized = True

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._do_destroy()
        self._destroyed = True

    def _do_initialize(self) -> None:
        """Hook for subclasses; raise ConfigurationError to refuse initialization."""

    def _do_destroy(self) -> None:
        pass

    def _ensure_initialized(self) -> None:
        if self._destroyed:
            raise DestroyedComponentError(f"{self._describe()} has been destroyed")
        if not self._initialized:
            raise UninitializedComponentError(
                f"{self._describe()} not initialized — call initialize() first"
            )

    def _ensure_modifiable(self) -> None:
        if self._destroyed:
            raise DestroyedComponentError(f"{self._describe()} has been destroyed")
        if self._initialized:
            raise UnmodifiableComponentError(f"{self._describe()} is already initialized")

    def _describe(self) -> str:
        return type(self).__name__
