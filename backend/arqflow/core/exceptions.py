class ArqFlowError(Exception):
    """Base exception for the ArqFlow backend."""

    pass


class WorkflowError(ArqFlowError):
    """Expected, caller-recoverable failure of a workflow operation.

    Each subclass carries a stable ``code`` and the HTTP status the API layer
    renders it with. Only ``retryable`` errors may succeed on an identical retry.
    """

    code = "workflow_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(WorkflowError):
    """Project does not exist or belongs to another organization."""

    code = "not_found"
    status_code = 404

    def __init__(self, entity: str = "Project"):
        self.entity = entity
        super().__init__(f"{entity} not found")


class MissingWorkflowError(WorkflowError):
    code = "missing_workflow"
    status_code = 409

    def __init__(self):
        super().__init__("Project has no workflow configured")


class InvalidStageError(WorkflowError):
    code = "invalid_stage"
    status_code = 422

    def __init__(self, stage_id: str):
        self.stage_id = stage_id
        super().__init__(f"Invalid stage: {stage_id}")


class InvalidStateError(WorkflowError):
    """Operation forbidden by the project's current status."""

    code = "invalid_state"
    status_code = 409

    def __init__(self, message: str, status: str | None = None):
        self.status = status
        super().__init__(message)


class DuplicateStageError(WorkflowError):
    code = "duplicate_stage"
    status_code = 409

    def __init__(self, stage_id: str):
        self.stage_id = stage_id
        super().__init__(f'Stage with ID "{stage_id}" already exists')


class InvalidHoursError(WorkflowError):
    code = "invalid_hours"
    status_code = 422

    def __init__(self, hours):
        self.hours = hours
        super().__init__("Hours must be greater than 0 and at most 24")


class FutureDateError(WorkflowError):
    code = "future_date"
    status_code = 422

    def __init__(self, entry_date):
        self.entry_date = entry_date
        super().__init__("Date cannot be in the future")


class UnknownServiceTypeError(WorkflowError):
    code = "unknown_service_type"
    status_code = 422

    def __init__(self, service_type: str, modality: str | None = None):
        self.service_type = service_type
        self.modality = modality
        suffix = f" (modality: {modality})" if modality else ""
        super().__init__(f"Unknown service type: {service_type}{suffix}")


class MalformedWorkflowError(WorkflowError):
    """Stored workflow document violates the workflow invariants."""

    code = "malformed_workflow"
    status_code = 500

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Stored workflow is malformed: {reason}")


class WorkflowConflictError(WorkflowError):
    """Workflow changed between read and conditional write."""

    code = "workflow_conflict"
    status_code = 409
    retryable = True

    def __init__(self, project_id):
        self.project_id = project_id
        super().__init__("Project workflow was modified concurrently, retry the request")
