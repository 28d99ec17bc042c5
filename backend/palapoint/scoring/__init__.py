"""Pure padel scoring domain: state, rules engine and display projection."""

from . import display, effects, engine, situation, state

__all__ = [
    "display",
    "effects",
    "engine",
    "situation",
    "state",
]
