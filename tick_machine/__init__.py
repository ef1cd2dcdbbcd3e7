"""tick-machine - Declarative state machines with batched entry effects."""
from __future__ import annotations

from tick_machine.config import HostConfig, load_definition
from tick_machine.events import normalize_event, normalize_transition
from tick_machine.guards import MachineGuards, check_guard
from tick_machine.host import BatchHost, Host, LoopHost
from tick_machine.machine import Machine, create_machine
from tick_machine.types import (
    INITIAL,
    EffectContext,
    Event,
    GuardContext,
    InvalidEventError,
    MachineConfigError,
    MachineDef,
    MachineError,
    Snapshot,
    StateDef,
    Transition,
    UpdateDepthError,
)

__all__ = [
    "INITIAL",
    "Event",
    "Transition",
    "StateDef",
    "MachineDef",
    "Snapshot",
    "GuardContext",
    "EffectContext",
    "MachineError",
    "MachineConfigError",
    "InvalidEventError",
    "UpdateDepthError",
    "HostConfig",
    "load_definition",
    "normalize_event",
    "normalize_transition",
    "MachineGuards",
    "check_guard",
    "Host",
    "BatchHost",
    "LoopHost",
    "Machine",
    "create_machine",
]
