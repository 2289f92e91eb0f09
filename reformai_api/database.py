"""
PURPOSE: Database models and connection for the ReformAI API - local persistence of projects, tasks, history and schedule runs
SRP and DRY check: Pass - Single responsibility of data persistence layer, DRY row <-> domain conversions
"""
import logging
from datetime import datetime
from typing import Any, Optional
from sqlalchemy import BigInteger, Column, DateTime, Float, Index, Integer, JSON, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from reformai.tracker.history import sort_history
from reformai.tracker.task_types import Category, HistoryEntry, Project, SubTask, Task, new_id
from reformai_api.config import API_SETTINGS
from reformai_api.storage import TrackerStore

logger = logging.getLogger(__name__)

DATABASE_URL = API_SETTINGS.database_url

engine_kwargs: dict[str, Any] = {
    "pool_pre_ping": True,
    "pool_recycle": 3600,
    "connect_args": {"connect_timeout": 10},
}

# SQLite takes its timeout in seconds, and the API uses sessions across worker threads.
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"timeout": 10.0, "check_same_thread": False}

engine = create_engine(DATABASE_URL, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class ProjectRecord(Base):
    """A renovation project, owning a set of tasks"""
    __tablename__ = "projects"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(255), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(String(40), nullable=False)


class CategoryRecord(Base):
    __tablename__ = "categories"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    icon = Column(String(100), nullable=True)


class TaskRecord(Base):
    """A renovation task, with its checklist stored inline as json"""
    __tablename__ = "tasks"
    __table_args__ = (
        Index('idx_tasks_project_id_room', 'project_id', 'room'),
    )

    id = Column(String(64), primary_key=True)
    project_id = Column(String(64), nullable=True)
    category_id = Column(String(64), nullable=True)
    user_id = Column(String(255), nullable=True)

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, default="")
    room = Column(String(255), nullable=False)
    priority = Column(String(10), nullable=False, default="Média")
    status = Column(String(20), nullable=False, default="pending")
    category = Column(String(100), nullable=True)

    sub_tasks = Column(JSON, nullable=False, default=list)
    photos = Column(JSON, nullable=True)  # data URLs
    video_url = Column(Text, nullable=True)  # data URL
    created_at = Column(String(40), nullable=True)

    # Insertion order, the task list is shown in the order tasks were added.
    position = Column(Integer, nullable=False, default=0)


class HistoryRecord(Base):
    __tablename__ = "history_entries"
    __table_args__ = (
        Index('idx_history_project_id_timestamp', 'project_id', 'timestamp'),
    )

    # Insertion order, breaks ties between entries of the same millisecond.
    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(String(255), nullable=True)
    project_id = Column(String(64), nullable=True)
    timestamp = Column(BigInteger, nullable=False)  # epoch milliseconds
    user = Column(String(255), nullable=False)
    action = Column(String(255), nullable=False)
    details = Column(Text, nullable=False)
    type = Column(String(20), nullable=False)


class ScheduleRun(Base):
    """One request for an AI schedule, with the LLM outcome"""
    __tablename__ = "schedule_runs"

    id = Column(Integer, primary_key=True, index=True)
    run_id = Column(String(64), unique=True, index=True, nullable=False)
    project_id = Column(String(64), index=True, nullable=True)

    strategy = Column(String(20), nullable=False)
    llm_model = Column(String(255), nullable=True)
    task_count = Column(Integer, nullable=False, default=0)

    status = Column(String(20), nullable=False, default="pending")  # pending, running, completed, failed
    result = Column(JSON, nullable=True)
    response_metadata = Column(JSON, nullable=True)
    unknown_task_ids = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)
    attempt_count = Column(Integer, nullable=True)


def _task_from_record(record: TaskRecord) -> Task:
    return Task(
        id=record.id,
        project_id=record.project_id,
        category_id=record.category_id,
        user_id=record.user_id,
        title=record.title,
        description=record.description or "",
        room=record.room,
        priority=record.priority,
        status=record.status,
        category=record.category,
        sub_tasks=[SubTask.model_validate(item) for item in (record.sub_tasks or [])],
        photos=record.photos,
        video_url=record.video_url,
        created_at=record.created_at,
    )


def _task_columns(task: Task) -> dict[str, Any]:
    return {
        "project_id": task.project_id,
        "category_id": task.category_id,
        "user_id": task.user_id,
        "title": task.title,
        "description": task.description,
        "room": task.room,
        "priority": task.priority.value,
        "status": task.status.value,
        "category": task.category,
        "sub_tasks": [subtask.model_dump() for subtask in task.sub_tasks],
        "photos": task.photos,
        "video_url": task.video_url,
        "created_at": task.created_at,
    }


def _project_from_record(record: ProjectRecord) -> Project:
    return Project(
        id=record.id,
        user_id=record.user_id,
        name=record.name,
        description=record.description,
        address=record.address,
        status=record.status,
        created_at=record.created_at,
    )


def _history_from_record(record: HistoryRecord) -> HistoryEntry:
    return HistoryEntry(
        id=record.id,
        user_id=record.user_id,
        project_id=record.project_id,
        timestamp=record.timestamp,
        user=record.user,
        action=record.action,
        details=record.details,
        type=record.type,
    )


def _schedule_run_to_dict(run: ScheduleRun) -> dict[str, Any]:
    return {
        "run_id": run.run_id,
        "project_id": run.project_id,
        "strategy": run.strategy,
        "llm_model": run.llm_model,
        "task_count": run.task_count,
        "status": run.status,
        "result": run.result,
        "response_metadata": run.response_metadata,
        "unknown_task_ids": run.unknown_task_ids or [],
        "error_message": run.error_message,
        "created_at": run.created_at,
        "completed_at": run.completed_at,
        "duration_seconds": run.duration_seconds,
        "attempt_count": run.attempt_count,
    }


class DatabaseService(TrackerStore):
    """Service class for database operations"""

    def __init__(self, db: Session):
        self.db = db

    # Projects

    def list_projects(self, user_id: Optional[str] = None) -> list[Project]:
        query = self.db.query(ProjectRecord)
        if user_id:
            query = query.filter(ProjectRecord.user_id == user_id)
        return [_project_from_record(r) for r in query.order_by(ProjectRecord.created_at.desc()).all()]

    def get_project(self, project_id: str) -> Optional[Project]:
        record = self.db.get(ProjectRecord, project_id)
        return _project_from_record(record) if record else None

    def save_project(self, project: Project) -> Project:
        record = self.db.get(ProjectRecord, project.id)
        if record is None:
            record = ProjectRecord(id=project.id)
            self.db.add(record)
        record.user_id = project.user_id
        record.name = project.name
        record.description = project.description
        record.address = project.address
        record.status = project.status.value
        record.created_at = project.created_at
        self.db.commit()
        return project

    def delete_project(self, project_id: str) -> bool:
        record = self.db.get(ProjectRecord, project_id)
        if record is None:
            return False
        self.db.query(TaskRecord).filter(TaskRecord.project_id == project_id).delete()
        self.db.delete(record)
        self.db.commit()
        return True

    # Categories

    def list_categories(self) -> list[Category]:
        records = self.db.query(CategoryRecord).order_by(CategoryRecord.name).all()
        return [Category(id=r.id, name=r.name, description=r.description, icon=r.icon) for r in records]

    def save_category(self, category: Category) -> Category:
        record = self.db.get(CategoryRecord, category.id)
        if record is None:
            record = CategoryRecord(id=category.id)
            self.db.add(record)
        record.name = category.name
        record.description = category.description
        record.icon = category.icon
        self.db.commit()
        return category

    # Tasks

    def list_tasks(self, project_id: Optional[str] = None, room: Optional[str] = None) -> list[Task]:
        query = self.db.query(TaskRecord)
        if project_id:
            query = query.filter(TaskRecord.project_id == project_id)
        if room:
            query = query.filter(TaskRecord.room == room)
        return [_task_from_record(r) for r in query.order_by(TaskRecord.position).all()]

    def get_task(self, task_id: str) -> Optional[Task]:
        record = self.db.get(TaskRecord, task_id)
        return _task_from_record(record) if record else None

    def _next_position(self) -> int:
        last = self.db.query(TaskRecord).order_by(TaskRecord.position.desc()).first()
        return (last.position + 1) if last else 0

    def save_task(self, task: Task) -> Task:
        record = self.db.get(TaskRecord, task.id)
        if record is None:
            record = TaskRecord(id=task.id, position=self._next_position())
            self.db.add(record)
        for key, value in _task_columns(task).items():
            setattr(record, key, value)
        self.db.commit()
        return task

    def delete_task(self, task_id: str) -> bool:
        record = self.db.get(TaskRecord, task_id)
        if record is None:
            return False
        self.db.delete(record)
        self.db.commit()
        return True

    def replace_tasks(self, tasks: list[Task], project_id: Optional[str] = None) -> None:
        query = self.db.query(TaskRecord)
        if project_id:
            query = query.filter(TaskRecord.project_id == project_id)
        query.delete()
        position = self._next_position()
        for task in tasks:
            record = TaskRecord(id=task.id, position=position)
            for key, value in _task_columns(task).items():
                setattr(record, key, value)
            # Imported tasks belong to the target project, whatever project they were exported from.
            if project_id:
                record.project_id = project_id
            # A task id may exist in another project, the imported copy gets a fresh one.
            if self.db.get(TaskRecord, task.id) is not None:
                record.id = new_id()
                logger.warning(f"Task id {task.id!r} already in use, imported as {record.id!r}")
            self.db.add(record)
            self.db.flush()
            position += 1
        self.db.commit()

    # History

    def add_history(self, entries: list[HistoryEntry], limit: int) -> None:
        if not entries:
            return
        for entry in entries:
            self.db.add(HistoryRecord(
                id=entry.id,
                user_id=entry.user_id,
                project_id=entry.project_id,
                timestamp=entry.timestamp,
                user=entry.user,
                action=entry.action,
                details=entry.details,
                type=entry.type.value,
            ))
        self.db.flush()

        for project_id in {entry.project_id for entry in entries}:
            query = self.db.query(HistoryRecord).filter(HistoryRecord.project_id == project_id)
            stale = query.order_by(HistoryRecord.timestamp.desc(), HistoryRecord.pk.desc()).offset(limit).all()
            for record in stale:
                self.db.delete(record)
        self.db.commit()

    def list_history(self, project_id: Optional[str] = None, limit: int = 100) -> list[HistoryEntry]:
        query = self.db.query(HistoryRecord)
        if project_id:
            query = query.filter(HistoryRecord.project_id == project_id)
        records = query.order_by(HistoryRecord.timestamp.desc(), HistoryRecord.pk.desc()).limit(limit).all()
        return sort_history([_history_from_record(r) for r in records])

    # Schedule runs

    def create_schedule_run(self, run_data: dict[str, Any]) -> dict[str, Any]:
        run = ScheduleRun(**run_data)
        self.db.add(run)
        self.db.commit()
        self.db.refresh(run)
        return _schedule_run_to_dict(run)

    def update_schedule_run(self, run_id: str, update_data: dict[str, Any]) -> Optional[dict[str, Any]]:
        run = self.db.query(ScheduleRun).filter(ScheduleRun.run_id == run_id).first()
        if run is None:
            return None
        for key, value in update_data.items():
            setattr(run, key, value)
        self.db.commit()
        self.db.refresh(run)
        return _schedule_run_to_dict(run)

    def get_schedule_run(self, run_id: str) -> Optional[dict[str, Any]]:
        run = self.db.query(ScheduleRun).filter(ScheduleRun.run_id == run_id).first()
        return _schedule_run_to_dict(run) if run else None

    def list_schedule_runs(self, project_id: Optional[str] = None, limit: int = 20) -> list[dict[str, Any]]:
        query = self.db.query(ScheduleRun)
        if project_id:
            query = query.filter(ScheduleRun.project_id == project_id)
        return [_schedule_run_to_dict(run) for run in query.order_by(ScheduleRun.id.desc()).limit(limit).all()]

    def close(self):
        """Close database session"""
        self.db.close()


def get_database():
    """Get DatabaseService instance for dependency injection"""
    db = SessionLocal()
    try:
        yield DatabaseService(db)
    finally:
        db.close()


def create_tables():
    """Create all database tables"""
    Base.metadata.create_all(bind=engine)
