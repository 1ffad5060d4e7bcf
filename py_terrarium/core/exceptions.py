"""Errors raised by the orchestration layer."""


class TerrariumError(Exception):
    """Base class for game errors."""


class InvalidMoveError(TerrariumError):
    """A move request breaks the rules of the current turn."""


class GameNotFoundError(TerrariumError):
    """No game with the requested id."""
