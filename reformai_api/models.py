"""
PURPOSE: Pydantic models for API request/response schemas - ensures type safety and validation
SRP and DRY check: Pass - Single responsibility of data validation, task and history payloads reuse the domain types
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime
from reformai.schedule.optimize_renovation import OptimizationResult, OptimizationStrategy
from reformai.tracker.task_types import HistoryEntry, Priority, ProjectStatus


class ScheduleRunStatus(str, Enum):
    """Status of a schedule optimization run"""
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class CreateProjectRequest(BaseModel):
    """Request to create a renovation project"""
    name: str = Field(..., description="Project name", min_length=1, max_length=255)
    description: Optional[str] = Field(None, description="Free text description")
    address: Optional[str] = Field(None, description="Address of the property", max_length=500)
    user_id: Optional[str] = Field(None, description="Owner, defaults to the X-User-Id header")


class UpdateProjectRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = Field(None, max_length=500)
    status: Optional[ProjectStatus] = None


class CreateCategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, description="Icon name shown next to the category")


class CreateTaskRequest(BaseModel):
    """Request to add a task, sub-steps are filled in from the template catalog"""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., description="Task title, e.g. 'Pintura de paredes'", max_length=500)
    room: str = Field(..., description="Room where the work happens, e.g. 'Sala'", max_length=255)
    description: str = Field("", description="Free text notes")
    priority: Priority = Field(Priority.MEDIA, description="Alta, Média or Baixa")
    project_id: Optional[str] = Field(None, description="Project the task belongs to")
    category_id: Optional[str] = Field(None, description="Category the task belongs to")
    photos: Optional[List[str]] = Field(None, description="Photos as data URLs")
    video_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("video_url", "videoUrl"),
        description="Video as a data URL",
    )

    @field_validator("title", "room")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Must not be empty")
        return v.strip()


class UpdateTaskRequest(BaseModel):
    """Partial task update, only the given fields change"""
    title: Optional[str] = Field(None, max_length=500)
    room: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    category: Optional[str] = None
    category_id: Optional[str] = None
    project_id: Optional[str] = None


class AddSubTaskRequest(BaseModel):
    title: str = Field(..., description="Title of the manual sub-step", max_length=500)


class AttachVideoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_url: str = Field(
        ...,
        validation_alias=AliasChoices("video_url", "videoUrl"),
        description="Video as a data URL",
    )


class ProgressBucketResponse(BaseModel):
    total: int = Field(0, description="Number of tasks in the bucket")
    progress: int = Field(0, description="Average completion percentage (0-100)")


class StatsResponse(BaseModel):
    """Progress dashboard numbers"""
    total_progress: int = Field(..., description="Average completion of all tasks (0-100)")
    by_room: Dict[str, ProgressBucketResponse] = Field(..., description="Progress per room")
    by_priority: Dict[str, ProgressBucketResponse] = Field(..., description="Progress per priority")


class HistoryResponse(BaseModel):
    entries: List[HistoryEntry] = Field(..., description="History entries, newest first")


class ImportBackupResponse(BaseModel):
    imported: int = Field(..., description="Number of tasks restored")
    history_entry: HistoryEntry


class SessionRequest(BaseModel):
    user_id: Optional[str] = Field(None, description="Identifier of the user, defaults to the X-User-Id header")
    project_id: Optional[str] = None


class SessionResponse(BaseModel):
    user: str = Field(..., description="Display name used in the history")
    logged_in: bool
    history_entry: HistoryEntry


class CatalogResponse(BaseModel):
    """Suggestion lists for the task form"""
    rooms: Dict[str, List[str]]
    tasks: List[Dict[str, Any]]
    subtask_templates: Dict[str, List[str]]


class OptimizeScheduleRequest(BaseModel):
    """Request an AI schedule for the tasks of a project"""
    project_id: Optional[str] = Field(None, description="Only schedule the tasks of this project")
    strategy: OptimizationStrategy = Field(OptimizationStrategy.fastest, description="fastest, priority or room")
    llm_model: Optional[str] = Field(None, description="LLM model ID to use, 'auto' tries all by priority")


class ScheduleRunResponse(BaseModel):
    """A schedule optimization run, with its result once completed"""
    run_id: str = Field(..., description="Unique run identifier")
    project_id: Optional[str] = None
    strategy: OptimizationStrategy
    llm_model: Optional[str] = Field(None, description="LLM model requested for this run")
    task_count: int = Field(0, description="Number of tasks sent to the model")
    status: ScheduleRunStatus
    result: Optional[OptimizationResult] = Field(None, description="Phases, estimate and advice")
    unknown_task_ids: List[str] = Field(default_factory=list, description="Task ids in the result that don't exist")
    error_message: Optional[str] = Field(None, description="Error message if failed")
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    attempt_count: Optional[int] = Field(None, description="Number of LLMs tried")


class LLMModel(BaseModel):
    """Available LLM model information"""
    id: str = Field(..., description="Model identifier")
    label: str = Field(..., description="Human-readable model name")
    comment: str = Field("", description="Model description/capabilities")
    priority: int = Field(0, description="Priority/ordering (lower = higher priority)")


class APIError(BaseModel):
    """Standard API error response"""
    error: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=datetime.now)


class HealthResponse(BaseModel):
    """API health check response"""
    status: str = Field("healthy", description="API status")
    version: str = Field(..., description="API version")
    storage_backend: str = Field(..., description="database or supabase")
    available_models: int = Field(..., description="Number of available LLM models")
