"""Action Registry — which diagnostics apply to which kind of process."""

from __future__ import annotations

from procdiag.exceptions import DuplicateActionError
from procdiag.types import ActionSpec, ProcessCategory


class ActionRegistry:
    """Ordered table of ActionSpecs.

    Lookups never raise: a category the registry knows nothing about just
    has no actions, so the menu can say so instead of crashing.
    """

    def __init__(self) -> None:
        self._actions: list[ActionSpec] = []

    def register(self, spec: ActionSpec) -> None:
        for existing in self._actions:
            if existing.name == spec.name and _overlaps(existing, spec):
                raise DuplicateActionError(
                    f"Action '{spec.name}' already registered for "
                    f"{_label(existing.category)}"
                )
        self._actions.append(spec)

    def list_actions(self) -> list[ActionSpec]:
        return list(self._actions)

    def actions_for(self, category: object) -> list[ActionSpec]:
        if not isinstance(category, ProcessCategory):
            return []
        return [a for a in self._actions if a.applies_to(category)]

    def get(self, category: object, name: str) -> ActionSpec | None:
        for action in self.actions_for(category):
            if action.name == name:
                return action
        return None


def _overlaps(a: ActionSpec, b: ActionSpec) -> bool:
    return a.category is None or b.category is None or a.category == b.category


def _label(category: ProcessCategory | None) -> str:
    return "any category" if category is None else category.value
