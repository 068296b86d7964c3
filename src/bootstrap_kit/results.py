"""Result of a single idempotent mutation."""

from dataclasses import dataclass


@dataclass(frozen=True)
class StepResult:
    """What a mutation did, or would do under dry-run.

    ``action`` is one of: created, updated, added, unchanged, or the
    dry-run forms would-create, would-update, would-add.
    """

    action: str
    target: str
    detail: str = ""

    @property
    def changed(self) -> bool:
        return self.action in ("created", "updated", "added")

    @property
    def planned(self) -> bool:
        return self.action.startswith("would-")
