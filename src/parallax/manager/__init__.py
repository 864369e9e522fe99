"""Conductor and intervention heuristics."""

from parallax.manager.conductor import Conductor
from parallax.manager.intervention_engine import decide, recent_temperatures
from parallax.manager.ports import ConductorStore, MessageStore, SessionStore

__all__ = [
    "Conductor",
    "ConductorStore",
    "MessageStore",
    "SessionStore",
    "decide",
    "recent_temperatures",
]
