"""
PURPOSE: Storage interface shared by the local database and the Supabase backend
SRP and DRY check: Pass - Declares the persistence operations once, the services depend only on this surface
"""
from abc import ABC, abstractmethod
from typing import Any, Optional
from reformai.tracker.task_types import Category, HistoryEntry, Project, Task


class StorageError(Exception):
    """Raised when the storage backend cannot complete an operation."""
    pass


class TrackerStore(ABC):
    """Persistence for projects, categories, tasks, the history and schedule runs."""

    @abstractmethod
    def list_projects(self, user_id: Optional[str] = None) -> list[Project]: ...

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[Project]: ...

    @abstractmethod
    def save_project(self, project: Project) -> Project: ...

    @abstractmethod
    def delete_project(self, project_id: str) -> bool:
        """Delete the project and its tasks."""

    @abstractmethod
    def list_categories(self) -> list[Category]: ...

    @abstractmethod
    def save_category(self, category: Category) -> Category: ...

    @abstractmethod
    def list_tasks(self, project_id: Optional[str] = None, room: Optional[str] = None) -> list[Task]: ...

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[Task]: ...

    @abstractmethod
    def save_task(self, task: Task) -> Task:
        """Insert or update."""

    @abstractmethod
    def delete_task(self, task_id: str) -> bool: ...

    @abstractmethod
    def replace_tasks(self, tasks: list[Task], project_id: Optional[str] = None) -> None:
        """Drop the tasks in scope (one project, or all when project_id is None) and store the given ones."""

    @abstractmethod
    def add_history(self, entries: list[HistoryEntry], limit: int) -> None:
        """Store the entries, then keep only the newest `limit` entries of the project."""

    @abstractmethod
    def list_history(self, project_id: Optional[str] = None, limit: int = 100) -> list[HistoryEntry]:
        """Newest first."""

    @abstractmethod
    def create_schedule_run(self, run_data: dict[str, Any]) -> dict[str, Any]: ...

    @abstractmethod
    def update_schedule_run(self, run_id: str, update_data: dict[str, Any]) -> Optional[dict[str, Any]]: ...

    @abstractmethod
    def get_schedule_run(self, run_id: str) -> Optional[dict[str, Any]]: ...

    @abstractmethod
    def list_schedule_runs(self, project_id: Optional[str] = None, limit: int = 20) -> list[dict[str, Any]]:
        """Newest first."""

    def close(self) -> None:
        pass
