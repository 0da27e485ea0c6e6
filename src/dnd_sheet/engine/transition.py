"""Result type shared by every state transition.

Transitions are pure: they receive a snapshot and return a
TransitionResult holding the next snapshot. A rejected transition returns
the input snapshot unchanged together with an error string, so rule
violations never leave a partially mutated character behind.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from dnd_sheet.models.character import CharacterSnapshot


class TransitionResult(BaseModel):
    """Outcome of applying a transition to a snapshot.

    Attributes:
        state: The resulting snapshot (the input snapshot when rejected).
        success: Whether the transition was applied.
        error: Reason for rejection, if any.
        message: Human-readable summary of what changed.
    """

    model_config = ConfigDict(frozen=True)

    state: CharacterSnapshot
    success: bool = True
    error: str | None = None
    message: str = ""

    @classmethod
    def applied(cls, state: CharacterSnapshot, message: str = "") -> TransitionResult:
        """Build a successful result."""
        return cls(state=state, success=True, message=message)

    @classmethod
    def rejected(cls, state: CharacterSnapshot, error: str) -> TransitionResult:
        """Build a rejected result carrying the untouched snapshot."""
        return cls(state=state, success=False, error=error, message=error)

    @classmethod
    def unchanged(cls, state: CharacterSnapshot, message: str = "No change") -> TransitionResult:
        """Build a successful no-op result."""
        return cls(state=state, success=True, message=message)


def working_copy(state: CharacterSnapshot) -> CharacterSnapshot:
    """Deep-copy a snapshot so a transition can edit it freely."""
    return state.model_copy(deep=True)


__all__ = [
    "TransitionResult",
    "working_copy",
]
