"""Core data types for declarative state machines."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Union

# Event type carried by the first snapshot. Never sendable.
INITIAL = "$$initial"


@dataclass(frozen=True, slots=True)
class Event:
    """An event value. ``payload`` is opaque to the engine."""

    type: str
    payload: Any = None


@dataclass(frozen=True, slots=True)
class GuardContext:
    context: Any
    event: Event


@dataclass(frozen=True, slots=True)
class EffectContext:
    """Argument record handed to entry effects."""

    context: Any
    event: Event
    send: Sender
    set_context: ContextUpdater


Guard = Callable[[GuardContext], bool]
Cleanup = Callable[[], None]
Effect = Callable[[EffectContext], Union[Cleanup, None]]
Sender = Callable[[Union[str, Event, Mapping[str, Any]]], None]
ContextUpdater = Callable[[Callable[[Any], Any]], None]


@dataclass(frozen=True, slots=True)
class Transition:
    """Transition rule. ``guard`` is a predicate or a registered guard name."""

    target: str
    guard: Guard | str | None = None


@dataclass
class StateDef:
    """Definition of a single state. Not serialized."""

    on: dict[str, Transition | str] = field(default_factory=dict)  # event name -> rule
    effect: Effect | None = None  # entry effect, may return a cleanup


@dataclass
class MachineDef:
    """Definition of a whole machine."""

    initial: str
    states: dict[str, StateDef]
    context: Any = None


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Observable machine state at one instant."""

    value: str
    context: Any
    event: Event
    next_events: tuple[str, ...]


class MachineError(Exception):
    """Base class for state machine errors."""


class MachineConfigError(MachineError, ValueError):
    """Raised when a machine definition is inconsistent (unknown state, bad rule)."""


class InvalidEventError(MachineError, ValueError):
    """Raised on malformed event values or an attempt to send ``INITIAL``."""


class UpdateDepthError(MachineError, RuntimeError):
    """Raised when effects keep scheduling work past the host's depth limit."""

    def __init__(self, depth: int) -> None:
        self.depth = depth
        super().__init__(
            f"Maximum update depth exceeded: effects did not settle after {depth} batches"
        )
