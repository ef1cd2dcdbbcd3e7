"""Machine - transition dispatch, context updates and the effect pass."""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Callable, Iterator

from tick_machine.config import load_definition
from tick_machine.events import normalize_event
from tick_machine.guards import MachineGuards, check_guard
from tick_machine.host import Host
from tick_machine.types import (
    INITIAL,
    Cleanup,
    ContextUpdater,
    EffectContext,
    Event,
    MachineDef,
    Sender,
    Snapshot,
)

logger = logging.getLogger(__name__)

_UNSET = object()


class Machine:
    """A single running state machine bound to a host.

    Transitions apply immediately; entry effects and cleanups run only when
    the host runs the effect pass, once per batch, against the state the
    batch settled in.
    """

    def __init__(
        self,
        definition: MachineDef | Mapping[str, Any],
        host: Host,
        guards: MachineGuards | None = None,
    ) -> None:
        self._definition = load_definition(definition, guards)
        self._host = host
        initial = self._definition.initial
        self._state = Snapshot(
            value=initial,
            context=self._definition.context,
            event=Event(INITIAL),
            next_events=self._next_events(initial),
        )
        self._effect_value: Any = _UNSET  # state whose effect last ran
        self._transitioned = False
        self._cleanup: Cleanup | None = None
        self._closed = False

        # Bound once so the references stay identical for the machine's life.
        self.send: Sender = self._dispatch
        self.set_context: ContextUpdater = self._reduce
        self.run_effects: Callable[[], None] = self._run_effects

        self._host.schedule(self.run_effects)

    @property
    def state(self) -> Snapshot:
        return self._state

    @property
    def definition(self) -> MachineDef:
        return self._definition

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[Any]:
        yield self._state
        yield self.send

    def __enter__(self) -> Machine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _next_events(self, value: str) -> tuple[str, ...]:
        return tuple(self._definition.states[value].on)

    def _dispatch(self, evt: str | Event | Mapping[str, Any]) -> None:
        event = normalize_event(evt)
        if self._closed:
            logger.debug("Ignoring %r: machine is closed", event.type)
            return

        current = self._state
        rule = self._definition.states[current.value].on.get(event.type)
        if rule is None:
            logger.debug("No transition for %r in state %r", event.type, current.value)
            return
        if not check_guard(rule.guard, current.context, event):
            logger.debug("Guard denied %r in state %r", event.type, current.value)
            return

        self._state = Snapshot(
            value=rule.target,
            context=current.context,
            event=event,
            next_events=self._next_events(rule.target),
        )
        self._transitioned = True
        logger.debug("Transition %r -> %r on %r", current.value, rule.target, event.type)
        self._host.publish(self, self._state)
        self._host.schedule(self.run_effects)

    def _reduce(self, updater: Callable[[Any], Any]) -> None:
        if self._closed:
            logger.debug("Ignoring context update: machine is closed")
            return
        context = updater(self._state.context)
        self._state = dataclasses.replace(self._state, context=context)
        self._host.publish(self, self._state)

    def _run_effects(self) -> None:
        if self._closed:
            return
        if self._effect_value is not _UNSET and not self._transitioned:
            return
        self._transitioned = False

        cleanup, self._cleanup = self._cleanup, None
        try:
            if cleanup is not None:
                logger.debug("Cleaning up state %r", self._effect_value)
                cleanup()
        finally:
            self._enter()

    def _enter(self) -> None:
        snapshot = self._state
        self._effect_value = snapshot.value
        effect = self._definition.states[snapshot.value].effect
        if effect is None:
            return

        logger.debug("Running effect of state %r", snapshot.value)
        result = effect(EffectContext(
            context=snapshot.context,
            event=snapshot.event,
            send=self.send,
            set_context=self.set_context,
        ))
        if not callable(result):
            return
        if self._closed:
            # Closed from inside the effect: nothing will run this later.
            result()
        else:
            self._cleanup = result

    def close(self) -> None:
        """Run the pending cleanup and stop reacting. Idempotent."""
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing machine in state %r", self._state.value)
        cleanup, self._cleanup = self._cleanup, None
        if cleanup is not None:
            cleanup()


def create_machine(
    definition: MachineDef | Mapping[str, Any],
    host: Host,
    guards: MachineGuards | None = None,
) -> Machine:
    """Build a machine and schedule its initial effect pass on ``host``.

    ``state, send = create_machine(...)`` unpacks the current snapshot and
    the sender.
    """
    return Machine(definition, host, guards)
