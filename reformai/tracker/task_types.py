"""
Data types shared by the renovation tracker: projects, tasks, checklist sub-steps and the activity history.

The wire values of Priority are kept in Portuguese, since the browser backups and the stored rows use them.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Priority(str, Enum):
    ALTA = "Alta"
    MEDIA = "Média"
    BAIXA = "Baixa"


class TaskStatus(str, Enum):
    pending = "pending"
    completed = "completed"


class ProjectStatus(str, Enum):
    active = "active"
    completed = "completed"
    archived = "archived"


class HistoryEntryType(str, Enum):
    creation = "creation"
    update = "update"
    completion = "completion"
    optimization = "optimization"
    deletion = "deletion"


class SubTask(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    completed: bool = False


class Category(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None


class Project(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    status: ProjectStatus = ProjectStatus.active
    created_at: str = Field(default_factory=utc_now_iso)


class Task(BaseModel):
    """
    A unit of renovation work in one room, optionally broken into sub-tasks.

    The sub-task list serializes as ``subTasks``, matching the backups produced by the browser app.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    project_id: Optional[str] = None
    category_id: Optional[str] = None
    user_id: Optional[str] = None
    title: str
    description: str = ""
    room: str
    priority: Priority = Priority.MEDIA
    status: TaskStatus = TaskStatus.pending
    category: Optional[str] = None
    sub_tasks: list[SubTask] = Field(
        default_factory=list,
        validation_alias=AliasChoices("subTasks", "sub_tasks"),
        serialization_alias="subTasks",
    )
    photos: Optional[list[str]] = None
    video_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("video_url", "videoUrl"),
        serialization_alias="video_url",
    )
    created_at: Optional[str] = None

    def find_subtask(self, subtask_id: str) -> Optional[SubTask]:
        for subtask in self.sub_tasks:
            if subtask.id == subtask_id:
                return subtask
        return None

    def to_wire_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class HistoryEntry(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: Optional[str] = None
    project_id: Optional[str] = None
    timestamp: int
    user: str
    action: str
    details: str
    type: HistoryEntryType
