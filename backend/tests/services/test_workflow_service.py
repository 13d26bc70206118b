"""Integration tests for WorkflowService against a real database session."""

import uuid

import pytest
from sqlalchemy import select

from arqflow.core.exceptions import (
    DuplicateStageError,
    InvalidStageError,
    InvalidStateError,
    MalformedWorkflowError,
    MissingWorkflowError,
    NotFoundError,
    UnknownServiceTypeError,
    WorkflowConflictError,
)
from arqflow.db.models.activity_log import ActivityLog
from arqflow.db.models.project import Project
from arqflow.domain.workflow import ProjectStatus
from tests.support import ORG_ID, OTHER_ORG_ID

pytestmark = pytest.mark.integration


async def _logs(session_factory, project_id, action=None) -> list[ActivityLog]:
    query = select(ActivityLog).where(ActivityLog.entity_id == project_id)
    if action is not None:
        query = query.where(ActivityLog.action == action)
    async with session_factory() as session:
        result = await session.execute(query.order_by(ActivityLog.created_at.asc()))
        return list(result.scalars().all())


async def _set_raw_workflow(session_factory, project_id, workflow) -> None:
    async with session_factory() as session:
        project = await session.get(Project, project_id)
        project.workflow = workflow
        await session.commit()


class TestCreateProject:
    async def test_creates_project_at_first_stage(self, workflow_service, session_factory):
        project = await workflow_service.create_project(
            organization_id=ORG_ID, service_type="projetexpress", created_by="user_ana", notes="Casa Jardins"
        )

        assert project.status == "aguardando"
        assert project.stage == "formulario"
        assert project.workflow["current_stage_index"] == 0
        assert len(project.workflow["stages"]) == 9
        assert project.workflow_version == 0
        assert project.hours_used == 0

        logs = await _logs(session_factory, project.id, "created")
        assert len(logs) == 1
        assert logs[0].actor_id == "user_ana"

    async def test_decorexpress_online(self, workflow_service):
        project = await workflow_service.create_project(ORG_ID, "decorexpress", modality="online")
        assert project.modality == "online"
        assert len(project.workflow["stages"]) == 12

    async def test_unknown_service_type(self, workflow_service, session_factory):
        with pytest.raises(UnknownServiceTypeError):
            await workflow_service.create_project(ORG_ID, "paisagismo")

        async with session_factory() as session:
            result = await session.execute(select(Project))
            assert result.scalars().all() == []


class TestReadProjects:
    async def test_get_project_scoped_to_organization(self, workflow_service, projetexpress_project):
        found = await workflow_service.get_project(ORG_ID, projetexpress_project.id)
        assert found.id == projetexpress_project.id

        with pytest.raises(NotFoundError):
            await workflow_service.get_project(OTHER_ORG_ID, projetexpress_project.id)

    @pytest.mark.parametrize("project_id", ["not-a-uuid", str(uuid.uuid4())])
    async def test_get_project_unknown_id(self, workflow_service, project_id):
        with pytest.raises(NotFoundError):
            await workflow_service.get_project(ORG_ID, project_id)

    async def test_list_projects_filters(self, workflow_service):
        await workflow_service.create_project(ORG_ID, "projetexpress")
        producao = await workflow_service.create_project(ORG_ID, "producao")
        await workflow_service.create_project(OTHER_ORG_ID, "producao")

        assert len(await workflow_service.list_projects(ORG_ID)) == 2

        only_producao = await workflow_service.list_projects(ORG_ID, service_type="producao")
        assert [p.id for p in only_producao] == [producao.id]

        by_stage = await workflow_service.list_projects(ORG_ID, stage="recebimento")
        assert [p.id for p in by_stage] == [producao.id]

        assert await workflow_service.list_projects(ORG_ID, status="cancelado") == []
        assert len(await workflow_service.list_projects(ORG_ID, limit=1)) == 1

    async def test_get_stages(self, workflow_service, projetexpress_project):
        stages, current, index = await workflow_service.get_stages(ORG_ID, projetexpress_project.id)
        assert len(stages) == 9
        assert current == "formulario"
        assert index == 0


class TestMoveToStage:
    async def test_move_updates_project_and_logs_change(
        self, workflow_service, session_factory, projetexpress_project
    ):
        result = await workflow_service.move_to_stage(
            ORG_ID, projetexpress_project.id, "levantamento", actor_id="user_bruno"
        )

        assert result.stage == "levantamento"
        assert result.current_stage_index == 2
        assert result.status == ProjectStatus.AGUARDANDO
        assert result.completed_at is None

        project = await workflow_service.get_project(ORG_ID, projetexpress_project.id)
        assert project.stage == "levantamento"
        assert project.workflow["current_stage_index"] == 2
        assert project.workflow_version == 1

        logs = await _logs(session_factory, project.id, "stage_changed")
        assert len(logs) == 1
        assert logs[0].changes == {"old_stage": "formulario", "new_stage": "levantamento"}
        assert logs[0].actor_id == "user_bruno"

    async def test_move_to_final_stage_delivers(self, workflow_service, session_factory, projetexpress_project):
        await workflow_service.set_status(ORG_ID, projetexpress_project.id, "em_andamento")
        await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "detalhamento")

        result = await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "entrega")

        assert result.current_stage_index == 8
        assert result.status == ProjectStatus.ENTREGUE
        assert result.completed_at is not None

        project = await workflow_service.get_project(ORG_ID, projetexpress_project.id)
        assert project.status == "entregue"
        assert project.completed_at is not None

        last = (await _logs(session_factory, project.id, "stage_changed"))[-1]
        assert last.changes["old_status"] == "em_andamento"
        assert last.changes["new_status"] == "entregue"

        with pytest.raises(InvalidStateError):
            await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "formulario")

    async def test_move_to_current_stage_writes_nothing(
        self, workflow_service, session_factory, projetexpress_project
    ):
        result = await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "formulario")

        assert result.stage == "formulario"
        project = await workflow_service.get_project(ORG_ID, projetexpress_project.id)
        assert project.workflow_version == 0
        assert await _logs(session_factory, project.id, "stage_changed") == []

    async def test_unknown_stage_leaves_project_unchanged(self, workflow_service, projetexpress_project):
        with pytest.raises(InvalidStageError):
            await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "moodboard")

        project = await workflow_service.get_project(ORG_ID, projetexpress_project.id)
        assert project.stage == "formulario"
        assert project.workflow_version == 0

    async def test_missing_workflow(self, workflow_service, session_factory, projetexpress_project):
        await _set_raw_workflow(session_factory, projetexpress_project.id, None)

        with pytest.raises(MissingWorkflowError):
            await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "reuniao_briefing")
        with pytest.raises(MissingWorkflowError):
            await workflow_service.get_stages(ORG_ID, projetexpress_project.id)

    async def test_malformed_workflow(self, workflow_service, session_factory, projetexpress_project):
        broken = dict(projetexpress_project.workflow, current_stage_index=99)
        await _set_raw_workflow(session_factory, projetexpress_project.id, broken)

        with pytest.raises(MalformedWorkflowError):
            await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "reuniao_briefing")

    async def test_other_organization_cannot_move(self, workflow_service, projetexpress_project):
        with pytest.raises(NotFoundError):
            await workflow_service.move_to_stage(OTHER_ORG_ID, projetexpress_project.id, "reuniao_briefing")


class TestCompareAndSwap:
    async def test_stale_version_raises_conflict(self, workflow_service, session_factory, projetexpress_project):
        stale = await workflow_service.get_project(ORG_ID, projetexpress_project.id)
        await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "reuniao_briefing")

        async with session_factory() as session:
            with pytest.raises(WorkflowConflictError) as exc_info:
                await workflow_service._compare_and_swap(
                    session, stale, forbid_terminal=True, stage="levantamento"
                )
        assert exc_info.value.retryable is True
        assert exc_info.value.code == "workflow_conflict"

        project = await workflow_service.get_project(ORG_ID, projetexpress_project.id)
        assert project.stage == "reuniao_briefing"
        assert project.workflow_version == 1

    async def test_terminal_status_raises_conflict(self, workflow_service, session_factory, projetexpress_project):
        snapshot = await workflow_service.get_project(ORG_ID, projetexpress_project.id)

        async with session_factory() as session:
            project = await session.get(Project, projetexpress_project.id)
            project.status = "cancelado"
            await session.commit()

        async with session_factory() as session:
            with pytest.raises(WorkflowConflictError):
                await workflow_service._compare_and_swap(
                    session, snapshot, forbid_terminal=True, stage="reuniao_briefing"
                )

    async def test_each_write_bumps_version(self, workflow_service, projetexpress_project, custom_stage):
        await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "reuniao_briefing")
        await workflow_service.insert_stage(ORG_ID, projetexpress_project.id, custom_stage)
        await workflow_service.set_status(ORG_ID, projetexpress_project.id, "em_andamento")

        project = await workflow_service.get_project(ORG_ID, projetexpress_project.id)
        assert project.workflow_version == 3


class TestInsertStage:
    async def test_insert_before_current_keeps_current_stage(
        self, workflow_service, session_factory, projetexpress_project, custom_stage
    ):
        await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "levantamento")

        stages = await workflow_service.insert_stage(
            ORG_ID, projetexpress_project.id, custom_stage, position=1, actor_id="user_ana"
        )

        assert stages[1] == custom_stage
        assert len(stages) == 10
        project = await workflow_service.get_project(ORG_ID, projetexpress_project.id)
        assert project.stage == "levantamento"
        assert project.workflow["current_stage_index"] == 3

        logs = await _logs(session_factory, project.id, "stage_added")
        assert logs[0].changes == {"stage_id": custom_stage.id, "position": 1}

    async def test_custom_stage_is_per_project(self, workflow_service, projetexpress_project, custom_stage):
        other = await workflow_service.create_project(ORG_ID, "projetexpress")
        await workflow_service.insert_stage(ORG_ID, projetexpress_project.id, custom_stage)

        stages, _, _ = await workflow_service.get_stages(ORG_ID, other.id)
        assert custom_stage.id not in [s.id for s in stages]

    async def test_duplicate_stage(self, workflow_service, projetexpress_project, custom_stage):
        await workflow_service.insert_stage(ORG_ID, projetexpress_project.id, custom_stage)
        with pytest.raises(DuplicateStageError):
            await workflow_service.insert_stage(ORG_ID, projetexpress_project.id, custom_stage)

    async def test_custom_stage_is_a_valid_move_target(
        self, workflow_service, projetexpress_project, custom_stage
    ):
        await workflow_service.insert_stage(ORG_ID, projetexpress_project.id, custom_stage, position=4)
        result = await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, custom_stage.id)
        assert result.current_stage_index == 4


class TestSetStatus:
    async def test_start_and_cancel(self, workflow_service, session_factory, projetexpress_project):
        project = await workflow_service.set_status(
            ORG_ID, projetexpress_project.id, "em_andamento", actor_id="user_ana"
        )
        assert project.status == "em_andamento"

        project = await workflow_service.set_status(ORG_ID, projetexpress_project.id, "cancelado")
        assert project.status == "cancelado"

        logs = await _logs(session_factory, project.id, "status_changed")
        assert [log.changes["new_status"] for log in logs] == ["em_andamento", "cancelado"]

    async def test_cancelled_project_is_frozen(self, workflow_service, projetexpress_project, custom_stage):
        await workflow_service.set_status(ORG_ID, projetexpress_project.id, "cancelado")

        with pytest.raises(InvalidStateError):
            await workflow_service.set_status(ORG_ID, projetexpress_project.id, "em_andamento")
        with pytest.raises(InvalidStateError):
            await workflow_service.move_to_stage(ORG_ID, projetexpress_project.id, "reuniao_briefing")

    @pytest.mark.parametrize("status", ["entregue", "arquivado"])
    async def test_rejects_unsettable_status(self, workflow_service, projetexpress_project, status):
        with pytest.raises(InvalidStateError):
            await workflow_service.set_status(ORG_ID, projetexpress_project.id, status)

    async def test_same_status_is_a_no_op(self, workflow_service, projetexpress_project):
        project = await workflow_service.set_status(ORG_ID, projetexpress_project.id, "aguardando")
        assert project.workflow_version == 0
