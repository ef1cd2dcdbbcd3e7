"""Host configuration and machine definition loading."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from tick_machine.events import normalize_transition
from tick_machine.guards import MachineGuards
from tick_machine.types import MachineConfigError, MachineDef, StateDef, Transition


@dataclass(frozen=True)
class HostConfig:
    """Immutable configuration for batch hosts.

    Attributes:
        max_depth: Maximum number of batches a single flush may run before
            effects are considered to be looping. Must be positive.
    """

    max_depth: int = 50

    def __post_init__(self) -> None:
        if self.max_depth <= 0:
            raise ValueError("max_depth must be positive")


def _load_state(name: str, state: StateDef | Mapping[str, Any] | None) -> StateDef:
    if state is None:
        return StateDef()
    if isinstance(state, StateDef):
        return StateDef(on=dict(state.on or {}), effect=state.effect)
    if isinstance(state, Mapping):
        unknown = set(state) - {"on", "effect"}
        if unknown:
            raise MachineConfigError(
                f"State {name!r} has unknown keys: {sorted(unknown)}"
            )
        return StateDef(on=dict(state.get("on") or {}), effect=state.get("effect"))
    raise MachineConfigError(f"Invalid definition for state {name!r}: {state!r}")


def load_definition(
    definition: MachineDef | Mapping[str, Any],
    guards: MachineGuards | None = None,
) -> MachineDef:
    """Validate a definition and return a normalized copy.

    Every rule in the result is a ``Transition`` whose guard is a callable
    (named guards are looked up in ``guards``). The input is not modified.
    Raises MachineConfigError on unknown states, malformed rules, unknown
    guard names and non-callable effects.
    """
    if isinstance(definition, Mapping):
        if "initial" not in definition or "states" not in definition:
            raise MachineConfigError("Definition needs 'initial' and 'states'")
        definition = MachineDef(
            initial=definition["initial"],
            states=dict(definition["states"]),
            context=definition.get("context"),
        )
    elif not isinstance(definition, MachineDef):
        raise MachineConfigError(f"Invalid machine definition: {definition!r}")

    registry = guards if guards is not None else MachineGuards()
    states = {
        name: _load_state(name, state) for name, state in definition.states.items()
    }
    if definition.initial not in states:
        raise MachineConfigError(f"Initial state {definition.initial!r} is not defined")

    loaded: dict[str, StateDef] = {}
    for name, state in states.items():
        if state.effect is not None and not callable(state.effect):
            raise MachineConfigError(f"Effect of state {name!r} is not callable")
        rules: dict[str, Transition] = {}
        for event_name, rule in state.on.items():
            transition = normalize_transition(rule)
            if transition.target not in states:
                raise MachineConfigError(
                    f"State {name!r} transitions on {event_name!r} "
                    f"to undefined state {transition.target!r}"
                )
            guard = registry.resolve(transition.guard)
            rules[event_name] = Transition(transition.target, guard)
        loaded[name] = StateDef(on=rules, effect=state.effect)

    return MachineDef(initial=definition.initial, states=loaded, context=definition.context)
