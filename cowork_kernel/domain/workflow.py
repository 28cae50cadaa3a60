"""
Canonical workflow types (``cowork_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for workflow state machines.  A ``Workflow`` is the
single source of truth for which state changes are legal; callers derive
their offered choices from it rather than keeping a second table.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/`` or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* At most one transition per ``(from_state, to_state)`` pair.
* ``terminal_states`` have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    Contract: frozen.  ``reverts=True`` marks a corrective backward edge
    (undoing a premature advance) as opposed to forward progress.
    """
    from_state: str
    to_state: str
    action: str
    reverts: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a record lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} not in states"
            )
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.from_state}->{t.to_state} "
                    "references unknown state"
                )
            if (t.from_state, t.to_state) in seen:
                raise ValueError(
                    f"Workflow {self.name}: duplicate transition {t.from_state}->{t.to_state}"
                )
            seen.add((t.from_state, t.to_state))
        for state in self.terminal_states:
            if self.outgoing(state):
                raise ValueError(
                    f"Workflow {self.name}: terminal state {state!r} has outgoing transitions"
                )

    def outgoing(self, state: str) -> tuple[Transition, ...]:
        """Transitions leaving ``state``, in declaration order."""
        return tuple(t for t in self.transitions if t.from_state == state)

    def targets(self, state: str) -> frozenset[str]:
        """States reachable from ``state`` in one step."""
        return frozenset(t.to_state for t in self.outgoing(state))

    def find(self, from_state: str, to_state: str) -> Transition | None:
        """The transition for the pair, or None when the pair is illegal."""
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None
