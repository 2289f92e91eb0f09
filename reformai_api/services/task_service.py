"""
PURPOSE: Apply the renovation tracker rules on top of the storage backend and record the activity history
SRP and DRY check: Pass - HTTP routing stays in api.py, task rules stay in reformai.tracker, this layer loads, applies, saves
"""
import logging
from typing import Optional
from reformai.tracker.backup import export_tasks_json, import_history_entry, import_tasks_json
from reformai.tracker.history import make_reset_entry, make_session_entry
from reformai.tracker.progress import ProgressStats, calculate_stats
from reformai.tracker.task_operations import (
    Actor, TaskChange, add_manual_subtask, attach_media, create_task, delete_task_entry, toggle_subtask, update_task
)
from reformai.tracker.task_types import Category, HistoryEntry, Priority, Project, Task
from reformai_api.storage import TrackerStore

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    """Raised when a project, task or schedule run doesn't exist."""
    pass


class TaskService:
    """Service responsible for projects, tasks and their history"""

    def __init__(self, store: TrackerStore, history_limit: int = 100):
        self.store = store
        self.history_limit = history_limit

    def _commit(self, change: TaskChange) -> Task:
        self.store.save_task(change.task)
        self.store.add_history(change.history, self.history_limit)
        return change.task

    # Projects

    def create_project(self, user_id: str, name: str, description: Optional[str] = None, address: Optional[str] = None) -> Project:
        project = Project(user_id=user_id, name=name.strip(), description=description, address=address)
        logger.info(f"Creating project {project.id} for user {user_id!r}")
        return self.store.save_project(project)

    def get_project(self, project_id: str) -> Project:
        project = self.store.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id!r} not found")
        return project

    def update_project(self, project_id: str, changes: dict) -> Project:
        project = self.get_project(project_id)
        update = {key: value for key, value in changes.items() if value is not None}
        return self.store.save_project(project.model_copy(update=update))

    def delete_project(self, project_id: str) -> None:
        if not self.store.delete_project(project_id):
            raise NotFoundError(f"Project {project_id!r} not found")
        logger.info(f"Deleted project {project_id} and its tasks")

    # Categories

    def create_category(self, name: str, description: Optional[str] = None, icon: Optional[str] = None) -> Category:
        return self.store.save_category(Category(name=name.strip(), description=description, icon=icon))

    # Tasks

    def get_task(self, task_id: str) -> Task:
        task = self.store.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id!r} not found")
        return task

    def create_task(
        self,
        title: str,
        room: str,
        actor: Actor,
        description: str = "",
        priority: Priority = Priority.MEDIA,
        project_id: Optional[str] = None,
        category_id: Optional[str] = None,
        photos: Optional[list[str]] = None,
        video_url: Optional[str] = None,
    ) -> Task:
        if project_id:
            self.get_project(project_id)
        change = create_task(
            title,
            room,
            description=description,
            priority=priority,
            photos=photos,
            video_url=video_url,
            project_id=project_id,
            category_id=category_id,
            actor=actor,
        )
        return self._commit(change)

    def update_task(self, task_id: str, changes: dict, actor: Actor) -> Task:
        return self._commit(update_task(self.get_task(task_id), changes, actor))

    def delete_task(self, task_id: str, actor: Actor) -> None:
        task = self.get_task(task_id)
        self.store.delete_task(task_id)
        self.store.add_history([delete_task_entry(task, actor)], self.history_limit)

    def reset_tasks(self, actor: Actor, project_id: Optional[str] = None) -> HistoryEntry:
        """Delete every task of the project, or every task when no project is given."""
        if project_id:
            self.get_project(project_id)
        self.store.replace_tasks([], project_id=project_id)
        entry = make_reset_entry(user=actor.name, user_id=actor.user_id, project_id=project_id)
        self.store.add_history([entry], self.history_limit)
        logger.info(f"Deleted all tasks of project {project_id!r}")
        return entry

    def add_subtask(self, task_id: str, title: str, actor: Actor) -> Task:
        return self._commit(add_manual_subtask(self.get_task(task_id), title, actor))

    def toggle_subtask(self, task_id: str, subtask_id: str, actor: Actor) -> Task:
        return self._commit(toggle_subtask(self.get_task(task_id), subtask_id, actor))

    def attach_media(self, task_id: str, photos: Optional[list[str]] = None, video_url: Optional[str] = None) -> Task:
        task = attach_media(self.get_task(task_id), photos=photos, video_url=video_url)
        return self.store.save_task(task)

    # Dashboard

    def stats(self, project_id: Optional[str] = None) -> ProgressStats:
        return calculate_stats(self.store.list_tasks(project_id=project_id))

    def history(self, project_id: Optional[str] = None, limit: Optional[int] = None) -> list[HistoryEntry]:
        return self.store.list_history(project_id=project_id, limit=min(limit or self.history_limit, self.history_limit))

    # Backup

    def export_backup(self, project_id: Optional[str] = None) -> str:
        return export_tasks_json(self.store.list_tasks(project_id=project_id))

    def import_backup(self, text: str, actor: Actor, project_id: Optional[str] = None) -> tuple[list[Task], HistoryEntry]:
        tasks = import_tasks_json(text)
        if project_id:
            self.get_project(project_id)
        self.store.replace_tasks(tasks, project_id=project_id)
        entry = import_history_entry(len(tasks), user=actor.name, user_id=actor.user_id, project_id=project_id)
        self.store.add_history([entry], self.history_limit)
        logger.info(f"Imported {len(tasks)} tasks from backup into project {project_id!r}")
        return tasks, entry

    # Session

    def record_session(self, logging_in: bool, user_id: Optional[str] = None, project_id: Optional[str] = None) -> HistoryEntry:
        entry = make_session_entry(logging_in, user_id=user_id, project_id=project_id)
        self.store.add_history([entry], self.history_limit)
        return entry
