"""Errors raised by the session facade and the world stores."""

from .schema import WORLD_VERSION


class WorldError(Exception):
    """Error raised by the session facade."""
    pass


class StaleStateError(WorldError):
    """Caller's action_counter doesn't match the current snapshot."""
    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(
            f"Stale state: expected action counter {expected}, got {got}. "
            "Reload the world and retry."
        )


class SchemaVersionError(WorldError):
    """Saved snapshot was written by a newer engine."""
    def __init__(self, found: int, supported: int = WORLD_VERSION):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Save uses world version {found}; this engine supports up to {supported}."
        )


class NoWorldLoadedError(WorldError):
    """Operation needs a world but none is loaded."""
    pass


class NotInCombatError(WorldError):
    """Combat round requested with no active encounter."""
    pass
