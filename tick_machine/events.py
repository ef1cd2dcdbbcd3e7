"""Normalization of event values and transition rules."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from tick_machine.types import (
    INITIAL,
    Event,
    InvalidEventError,
    MachineConfigError,
    Transition,
)


def normalize_event(evt: str | Event | Mapping[str, Any]) -> Event:
    """Return ``evt`` as an Event. Accepts a bare name, an Event or a mapping."""
    if isinstance(evt, Event):
        event = evt
    elif isinstance(evt, str):
        event = Event(evt)
    elif isinstance(evt, Mapping):
        if "type" not in evt:
            raise InvalidEventError(f"Event mapping has no 'type': {evt!r}")
        event = Event(evt["type"], evt.get("payload"))
    else:
        raise InvalidEventError(f"Cannot send {type(evt).__name__} as an event")

    if not isinstance(event.type, str):
        raise InvalidEventError(f"Event type must be a string, got {event.type!r}")
    if event.type == INITIAL:
        raise InvalidEventError(f"{INITIAL!r} is reserved for the initial snapshot")
    return event


def normalize_transition(rule: str | Transition | Mapping[str, Any]) -> Transition:
    """Return ``rule`` as a Transition. A bare target name is always permitted."""
    if isinstance(rule, Transition):
        return rule
    if isinstance(rule, str):
        return Transition(rule)
    if isinstance(rule, Mapping):
        if "target" not in rule:
            raise MachineConfigError(f"Transition has no 'target': {rule!r}")
        return Transition(rule["target"], rule.get("guard"))
    raise MachineConfigError(f"Invalid transition rule: {rule!r}")
