"""
PURPOSE: Supabase-backed storage for the ReformAI API, the hosted alternative to the local database
SRP and DRY check: Pass - Maps the storage interface onto Supabase tables, nothing else

Tables: projects, categories, tasks, history, schedule_runs.
Task rows keep the checklist in a json column named "subTasks".
"""
import logging
from datetime import datetime
from typing import Any, Optional
from supabase import Client, create_client
from reformai.tracker.history import sort_history
from reformai.tracker.task_types import Category, HistoryEntry, Project, Task, new_id
from reformai_api.config import ApiSettings
from reformai_api.storage import StorageError, TrackerStore

logger = logging.getLogger(__name__)

_client: Optional[Client] = None


def get_supabase_client(settings: ApiSettings) -> Client:
    """Get or create the Supabase client (singleton)."""
    global _client

    if _client is not None:
        return _client

    if not settings.supabase_url or not settings.supabase_key:
        raise StorageError("Supabase storage selected, but SUPABASE_URL or the Supabase key is missing.")

    _client = create_client(settings.supabase_url, settings.supabase_key)
    logger.info(f"Supabase client created for {settings.supabase_url}")
    return _client


def _task_row(task: Task) -> dict[str, Any]:
    row = task.model_dump(mode="json", by_alias=True)
    return row


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SupabaseService(TrackerStore):
    def __init__(self, client: Client):
        self.client = client

    def _execute(self, table: str, query) -> list[dict[str, Any]]:
        try:
            result = query.execute()
        except Exception as e:
            logger.error(f"Supabase request on table {table!r} failed: {e}")
            raise StorageError(f"Supabase request on table {table!r} failed.") from e
        return result.data or []

    # Projects

    def list_projects(self, user_id: Optional[str] = None) -> list[Project]:
        query = self.client.table("projects").select("*")
        if user_id:
            query = query.eq("user_id", user_id)
        rows = self._execute("projects", query.order("created_at", desc=True))
        return [Project.model_validate(row) for row in rows]

    def get_project(self, project_id: str) -> Optional[Project]:
        rows = self._execute("projects", self.client.table("projects").select("*").eq("id", project_id).limit(1))
        return Project.model_validate(rows[0]) if rows else None

    def save_project(self, project: Project) -> Project:
        self._execute("projects", self.client.table("projects").upsert(project.model_dump(mode="json")))
        return project

    def delete_project(self, project_id: str) -> bool:
        if self.get_project(project_id) is None:
            return False
        self._execute("tasks", self.client.table("tasks").delete().eq("project_id", project_id))
        self._execute("projects", self.client.table("projects").delete().eq("id", project_id))
        return True

    # Categories

    def list_categories(self) -> list[Category]:
        rows = self._execute("categories", self.client.table("categories").select("*").order("name"))
        return [Category.model_validate(row) for row in rows]

    def save_category(self, category: Category) -> Category:
        self._execute("categories", self.client.table("categories").upsert(category.model_dump(mode="json")))
        return category

    # Tasks

    def list_tasks(self, project_id: Optional[str] = None, room: Optional[str] = None) -> list[Task]:
        query = self.client.table("tasks").select("*")
        if project_id:
            query = query.eq("project_id", project_id)
        if room:
            query = query.eq("room", room)
        rows = self._execute("tasks", query.order("created_at"))
        return [Task.model_validate(row) for row in rows]

    def get_task(self, task_id: str) -> Optional[Task]:
        rows = self._execute("tasks", self.client.table("tasks").select("*").eq("id", task_id).limit(1))
        return Task.model_validate(rows[0]) if rows else None

    def save_task(self, task: Task) -> Task:
        self._execute("tasks", self.client.table("tasks").upsert(_task_row(task)))
        return task

    def delete_task(self, task_id: str) -> bool:
        rows = self._execute("tasks", self.client.table("tasks").delete().eq("id", task_id))
        return bool(rows)

    def replace_tasks(self, tasks: list[Task], project_id: Optional[str] = None) -> None:
        delete_query = self.client.table("tasks").delete()
        if project_id:
            delete_query = delete_query.eq("project_id", project_id)
        else:
            # PostgREST refuses a delete without a filter.
            delete_query = delete_query.neq("id", "")
        self._execute("tasks", delete_query)

        if not tasks:
            return
        ids = [task.id for task in tasks]
        taken = {row["id"] for row in self._execute("tasks", self.client.table("tasks").select("id").in_("id", ids))}
        rows = []
        for task in tasks:
            update: dict[str, Any] = {}
            # Imported tasks belong to the target project, whatever project they were exported from.
            if project_id:
                update["project_id"] = project_id
            # A task id may exist in another project, the imported copy gets a fresh one.
            if task.id in taken:
                update["id"] = new_id()
                logger.warning(f"Task id {task.id!r} already in use, imported as {update['id']!r}")
            rows.append(_task_row(task.model_copy(update=update)))
        self._execute("tasks", self.client.table("tasks").insert(rows))

    # History

    def add_history(self, entries: list[HistoryEntry], limit: int) -> None:
        if not entries:
            return
        rows = [entry.model_dump(mode="json") for entry in entries]
        self._execute("history", self.client.table("history").insert(rows))

        for project_id in {entry.project_id for entry in entries}:
            query = self.client.table("history").select("id")
            query = query.eq("project_id", project_id) if project_id else query.is_("project_id", "null")
            stale = self._execute("history", query.order("timestamp", desc=True).range(limit, limit + 1000))
            stale_ids = [row["id"] for row in stale]
            if stale_ids:
                self._execute("history", self.client.table("history").delete().in_("id", stale_ids))

    def list_history(self, project_id: Optional[str] = None, limit: int = 100) -> list[HistoryEntry]:
        query = self.client.table("history").select("*")
        if project_id:
            query = query.eq("project_id", project_id)
        rows = self._execute("history", query.order("timestamp", desc=True).limit(limit))
        return sort_history([HistoryEntry.model_validate(row) for row in rows])

    # Schedule runs

    def create_schedule_run(self, run_data: dict[str, Any]) -> dict[str, Any]:
        row = {key: _jsonable(value) for key, value in run_data.items()}
        row.setdefault("created_at", datetime.utcnow().isoformat())
        rows = self._execute("schedule_runs", self.client.table("schedule_runs").insert(row))
        return rows[0] if rows else row

    def update_schedule_run(self, run_id: str, update_data: dict[str, Any]) -> Optional[dict[str, Any]]:
        row = {key: _jsonable(value) for key, value in update_data.items()}
        rows = self._execute("schedule_runs", self.client.table("schedule_runs").update(row).eq("run_id", run_id))
        return rows[0] if rows else None

    def get_schedule_run(self, run_id: str) -> Optional[dict[str, Any]]:
        rows = self._execute(
            "schedule_runs",
            self.client.table("schedule_runs").select("*").eq("run_id", run_id).limit(1),
        )
        return rows[0] if rows else None

    def list_schedule_runs(self, project_id: Optional[str] = None, limit: int = 20) -> list[dict[str, Any]]:
        query = self.client.table("schedule_runs").select("*")
        if project_id:
            query = query.eq("project_id", project_id)
        return self._execute("schedule_runs", query.order("created_at", desc=True).limit(limit))
