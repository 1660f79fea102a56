"""Reload engine: apply a new list of session specs with minimal disruption."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from termdeck.config.schema import SessionSpec
from termdeck.core.lifecycle import StartOutcome
from termdeck.logging import get_logger

if TYPE_CHECKING:
    from termdeck.core.lifecycle import SessionLifecycle
    from termdeck.ui.protocol import UserInterface

log = get_logger("reload")


@dataclass
class ReloadPlan:
    """Names sorted by what a reload has to do with them.

    Each list keeps the order of the snapshot it came from.
    """

    added: list[SessionSpec] = field(default_factory=list)
    removed: list[SessionSpec] = field(default_factory=list)
    changed: list[SessionSpec] = field(default_factory=list)  # the *new* specs
    unchanged: list[SessionSpec] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


def diff(previous: Sequence[SessionSpec], current: Sequence[SessionSpec]) -> ReloadPlan:
    """Compare two snapshots by name; specs compare by value."""
    before = {spec.name: spec for spec in previous}
    after = {spec.name: spec for spec in current}
    plan = ReloadPlan()

    for spec in previous:
        if spec.name not in after:
            plan.removed.append(spec)

    for spec in current:
        old = before.get(spec.name)
        if old is None:
            plan.added.append(spec)
        elif old != spec:
            plan.changed.append(spec)
        else:
            plan.unchanged.append(spec)

    return plan


class ReloadEngine:
    """Applies configuration changes to running sessions."""

    def __init__(self, lifecycle: SessionLifecycle, ui: UserInterface) -> None:
        self._lifecycle = lifecycle
        self._ui = ui

    def _start(self, spec: SessionSpec) -> StartOutcome:
        try:
            return self._lifecycle.start(spec)
        except Exception as e:
            log.exception("Unexpected error restarting %s", spec.name)
            self._ui.error(f"Failed to start {spec.name!r}: {e}")
            return StartOutcome.FAILED

    def apply(
        self, previous: Sequence[SessionSpec], current: Sequence[SessionSpec]
    ) -> ReloadPlan:
        """Incremental reload.

        Removed specs are stopped. Changed specs are stopped and started
        again only if they are marked auto-start; a manual spec stays stopped
        until started by hand. Added auto-start specs are started. Unchanged
        sessions are not touched.
        """
        plan = diff(previous, current)
        if plan.empty:
            log.debug("Reload: nothing to do")
            return plan

        for spec in plan.removed:
            self._lifecycle.stop(spec.name)

        for spec in plan.changed:
            self._lifecycle.stop(spec.name)
            if spec.auto_start:
                self._start(spec)

        for spec in plan.added:
            if spec.auto_start:
                self._start(spec)

        self._ui.info(
            f"Configuration reloaded: {len(plan.changed)} changed, "
            f"{len(plan.removed)} removed, {len(plan.added)} added."
        )
        return plan

    def full_reset(self, current: Sequence[SessionSpec]) -> int:
        """Dispose every session and watch, then start all auto-start specs.

        Returns:
            Number of sessions disposed.
        """
        disposed = self._lifecycle.stop_all()
        started = 0
        for spec in current:
            if spec.auto_start:
                if self._start(spec) is StartOutcome.STARTED:
                    started += 1
        self._ui.info(f"Full reload: stopped {disposed}, started {started}.")
        return disposed
