"""Pure decision logic for one Extract reconcile cycle.

Nothing in this module talks to the cluster: ``plan_cycle`` takes the Extract
as read and the dependents observed for it, and returns the actions the cycle
should perform together with the Reconciled condition to record when those
actions succeed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ..builders.metadata import dependent_name
from ..constants import EXTRACT_IMAGE_DEFAULT, KIND_JOB
from ..utils.conditions import set_reconciled_condition
from .dependents import DEPENDENT_KINDS, DependentKind, build_dependent, extract_ref


class StepOutcome(str, Enum):
    CONTINUE = "Continue"
    REQUEUE = "Requeue"


class ActionType(str, Enum):
    CREATE = "Create"
    MARK_COMPLETED = "MarkCompleted"
    DELETE = "Delete"


class ExtractPhase(str, Enum):
    ABSENT = "Absent"
    PROVISIONING = "Provisioning"
    RUNNING = "Running"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class Action:
    type: ActionType
    kind: str | None = None
    name: str | None = None
    body: dict[str, Any] | None = None


@dataclass
class CyclePlan:
    phase: ExtractPhase
    actions: list[Action] = field(default_factory=list)
    conditions: list[dict[str, Any]] = field(default_factory=list)
    requeue: bool = False

    @property
    def completes(self) -> bool:
        return any(a.type == ActionType.MARK_COMPLETED for a in self.actions)

    def of_type(self, type_: ActionType) -> list[Action]:
        return [a for a in self.actions if a.type == type_]


def is_job_complete(job: Mapping[str, Any] | None) -> bool:
    """A Job counts as complete only once exactly one pod has succeeded."""
    if not job:
        return False
    return ((job.get("status") or {}).get("succeeded") or 0) == 1


def is_recorded_completed(extract: Mapping[str, Any]) -> bool:
    return bool((extract.get("status") or {}).get("completed"))


def is_terminating(extract: Mapping[str, Any]) -> bool:
    return bool((extract.get("metadata") or {}).get("deletionTimestamp"))


def ensure_step(
    dependent: DependentKind,
    extract: dict[str, Any],
    observed: Mapping[str, dict[str, Any] | None],
    image: str = EXTRACT_IMAGE_DEFAULT,
) -> tuple[StepOutcome, Action | None]:
    if observed.get(dependent.kind) is not None:
        return StepOutcome.CONTINUE, None
    body = build_dependent(dependent, extract, image=image)
    action = Action(
        ActionType.CREATE, kind=dependent.kind, name=body["metadata"]["name"], body=body
    )
    return StepOutcome.REQUEUE, action


def derive_phase(
    extract: Mapping[str, Any], observed: Mapping[str, dict[str, Any] | None]
) -> ExtractPhase:
    if is_recorded_completed(extract):
        return ExtractPhase.COMPLETED
    if all(observed.get(d.kind) is not None for d in DEPENDENT_KINDS):
        return ExtractPhase.RUNNING
    if any(observed.get(d.kind) is not None for d in DEPENDENT_KINDS):
        return ExtractPhase.PROVISIONING
    return ExtractPhase.ABSENT


def cleanup_actions(extract_name: str) -> list[Action]:
    """Deletion of every dependent, Job first so no new pods start."""
    name = dependent_name(extract_name)
    ordered = [KIND_JOB] + [d.kind for d in DEPENDENT_KINDS if d.kind != KIND_JOB]
    return [Action(ActionType.DELETE, kind=kind, name=name) for kind in ordered]


def plan_cycle(
    extract: dict[str, Any],
    observed: Mapping[str, dict[str, Any] | None],
    image: str = EXTRACT_IMAGE_DEFAULT,
) -> CyclePlan:
    """Decide what one reconcile cycle does.

    ``observed`` maps dependent kinds to the object read from the cluster, or
    ``None`` when it does not exist; kinds missing from the mapping are treated
    as absent. At most one dependent is created per cycle, in creation order,
    and the plan then asks for a requeue. Once all dependents exist, a Job that
    has succeeded turns into completion of the Extract plus deletion of every
    dependent. A recorded completion, or a pending deletion of the Extract,
    suppresses all of this.
    """
    _, name, _ = extract_ref(extract)
    conditions = (extract.get("status") or {}).get("conditions")
    plan = CyclePlan(
        phase=derive_phase(extract, observed),
        conditions=set_reconciled_condition(conditions),
    )

    # Nothing new is created for an Extract that is done or on its way out
    if is_recorded_completed(extract) or is_terminating(extract):
        return plan

    for dependent in DEPENDENT_KINDS:
        outcome, action = ensure_step(dependent, extract, observed, image=image)
        if outcome is StepOutcome.REQUEUE:
            plan.actions.append(action)
            plan.requeue = True
            return plan

    if is_job_complete(observed.get(KIND_JOB)):
        plan.actions.append(Action(ActionType.MARK_COMPLETED))
        plan.actions.extend(cleanup_actions(name))
        plan.phase = ExtractPhase.COMPLETED

    return plan
