"""Guard evaluation and the MachineGuards registry."""
from __future__ import annotations

from typing import Any

from tick_machine.types import Event, Guard, GuardContext, MachineConfigError


def check_guard(guard: Guard | None, context: Any, event: Event) -> bool:
    """Evaluate a transition guard. A missing guard always permits."""
    if guard is None:
        return True
    return bool(guard(GuardContext(context=context, event=event)))


class MachineGuards:
    """Named guard predicates that definitions can refer to by string."""

    def __init__(self) -> None:
        self._guards: dict[str, Guard] = {}

    def register(self, name: str, fn: Guard) -> None:
        """Bind ``name`` to a predicate; a later binding replaces an earlier one."""
        self._guards[name] = fn

    def check(self, name: str, context: Any, event: Event) -> bool:
        """Evaluate the named guard against context and event. KeyError if unbound."""
        return check_guard(self._guards[name], context, event)

    def has(self, name: str) -> bool:
        return name in self._guards

    def names(self) -> list[str]:
        """Bound guard names, in registration order."""
        return list(self._guards)

    def resolve(self, guard: Guard | str | None) -> Guard | None:
        """Turn a guard name into its predicate; callables pass through."""
        if guard is None or callable(guard):
            return guard
        if not isinstance(guard, str):
            raise MachineConfigError(f"Guard is not callable: {guard!r}")
        if guard not in self._guards:
            raise MachineConfigError(f"Unknown guard {guard!r}")
        return self._guards[guard]
