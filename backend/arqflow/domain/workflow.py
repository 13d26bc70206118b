"""Workflow value object, stage transitions and custom stage insertion.

Pure domain logic: no DB access, no clock. Operations return new Workflow
values; persisting them is the service layer's job.
"""

from dataclasses import dataclass, replace
from enum import StrEnum

from arqflow.core.exceptions import (
    DuplicateStageError,
    InvalidStageError,
    InvalidStateError,
    MalformedWorkflowError,
    MissingWorkflowError,
    UnknownServiceTypeError,
)
from arqflow.domain.catalog import Stage, final_stage_id, index_of, resolve_catalog_key, stages_for


class ProjectStatus(StrEnum):
    """Project lifecycle status, orthogonal to stage."""

    AGUARDANDO = "aguardando"
    EM_ANDAMENTO = "em_andamento"
    ENTREGUE = "entregue"  # terminal, derived from reaching the final stage
    CANCELADO = "cancelado"  # terminal


TERMINAL_STATUSES = frozenset({ProjectStatus.ENTREGUE, ProjectStatus.CANCELADO})


@dataclass(frozen=True)
class Workflow:
    """Per-project stage sequence and the pointer to the current stage.

    Invariants (checked on construction, including deserialization):
        - stages is non-empty
        - stage ids are unique
        - 0 <= current_stage_index < len(stages)
    """

    service_type: str
    modality: str | None
    stages: tuple[Stage, ...]
    current_stage_index: int = 0

    def __post_init__(self):
        if not self.stages:
            raise MalformedWorkflowError("workflow has no stages")
        ids = [s.id for s in self.stages]
        if len(set(ids)) != len(ids):
            raise MalformedWorkflowError("duplicate stage ids")
        if isinstance(self.current_stage_index, bool) or not isinstance(self.current_stage_index, int):
            raise MalformedWorkflowError("current_stage_index is not an integer")
        if not 0 <= self.current_stage_index < len(self.stages):
            raise MalformedWorkflowError(
                f"current_stage_index {self.current_stage_index} out of range for {len(self.stages)} stages"
            )

    @property
    def current_stage(self) -> Stage:
        return self.stages[self.current_stage_index]

    @property
    def final_stage_id(self) -> str:
        """Final stage of the catalog this workflow was built from.

        Custom stages appended after it do not change which stage delivers
        the project.
        """
        return final_stage_id(self.service_type, self.modality)

    def to_dict(self) -> dict:
        """Serialize to the JSON document stored on ``projects.workflow``."""
        return {
            "type": self.service_type,
            "modality": self.modality,
            "stages": [s.to_dict() for s in self.stages],
            "current_stage_index": self.current_stage_index,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Workflow":
        """Deserialize and validate a stored workflow document.

        Raises:
            MalformedWorkflowError: document shape or invariants are broken
        """
        if not isinstance(data, dict):
            raise MalformedWorkflowError("workflow is not an object")
        raw_stages = data.get("stages")
        if not isinstance(raw_stages, list):
            raise MalformedWorkflowError("stages is not a list")
        try:
            stages = tuple(Stage.from_dict(s) for s in raw_stages)
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedWorkflowError(f"invalid stage entry ({exc})") from exc

        service_type = data.get("type")
        modality = data.get("modality")
        try:
            resolve_catalog_key(service_type, modality)
        except (UnknownServiceTypeError, TypeError) as exc:
            raise MalformedWorkflowError(f"unknown service type {service_type!r}") from exc

        return cls(
            service_type=service_type,
            modality=modality,
            stages=stages,
            current_stage_index=data.get("current_stage_index"),
        )


def build_workflow(service_type: str, modality: str | None = None) -> Workflow:
    """Create the initial workflow for a new project.

    The stage tuple is taken from the catalog; later customisation replaces the
    project's tuple and never touches the catalog itself.
    """
    resolved_type, resolved_modality = resolve_catalog_key(service_type, modality)
    return Workflow(
        service_type=resolved_type.value,
        modality=resolved_modality.value if resolved_modality else None,
        stages=tuple(stages_for(resolved_type, resolved_modality)),
        current_stage_index=0,
    )


@dataclass(frozen=True)
class StageMove:
    """Outcome of a validated stage transition."""

    workflow: Workflow
    stage_id: str
    status: ProjectStatus
    completed: bool  # True when this move delivered the project


def move_to_stage(
    workflow: Workflow | None,
    current_status: ProjectStatus,
    target_stage_id: str,
) -> StageMove:
    """Validate and compute a move to ``target_stage_id``.

    Pure function -- no side effects, no DB access.

    Rules:
        - Delivered or cancelled projects cannot move
        - The target must be in the project's own stage list
        - Forward, backward and same-stage moves are all allowed
        - Reaching the catalog's final stage sets status to ENTREGUE;
          any other move keeps the current status (status never regresses)

    Raises:
        InvalidStateError, MissingWorkflowError, InvalidStageError
    """
    if current_status in TERMINAL_STATUSES:
        verb = "delivered" if current_status == ProjectStatus.ENTREGUE else "cancelled"
        raise InvalidStateError(f"Cannot move stage of {verb} project", status=current_status.value)

    if workflow is None:
        raise MissingWorkflowError()

    new_index = index_of(workflow.stages, target_stage_id)
    if new_index is None:
        raise InvalidStageError(target_stage_id)

    completed = target_stage_id == workflow.final_stage_id
    return StageMove(
        workflow=replace(workflow, current_stage_index=new_index),
        stage_id=target_stage_id,
        status=ProjectStatus.ENTREGUE if completed else current_status,
        completed=completed,
    )


def insert_stage(workflow: Workflow | None, stage: Stage, position: int | None = None) -> Workflow:
    """Insert a project-specific stage, keeping the current-stage pointer on the same stage.

    Args:
        workflow: The project's workflow
        stage: Stage to insert; its id must be new to this workflow
        position: Target index, clamped into [0, len(stages)]; None appends

    Raises:
        MissingWorkflowError, DuplicateStageError
    """
    if workflow is None:
        raise MissingWorkflowError()

    if index_of(workflow.stages, stage.id) is not None:
        raise DuplicateStageError(stage.id)

    size = len(workflow.stages)
    insert_at = size if position is None else min(max(0, position), size)

    stages = workflow.stages[:insert_at] + (stage,) + workflow.stages[insert_at:]
    current = workflow.current_stage_index
    if insert_at <= current:
        current += 1

    return replace(workflow, stages=stages, current_stage_index=current)
