"""Core primitives for adguard-controller."""

from .models import Channel, Command, Outcome, OutcomeKind

__all__ = [
    "Channel",
    "Command",
    "Outcome",
    "OutcomeKind",
]
