"""
PURPOSE: FastAPI REST API for ReformAI - renovation task tracking, progress dashboard, backups and the AI schedule
SRP and DRY check: Pass - Single responsibility of HTTP routing, delegates task rules and the schedule to services

PROMPT> uvicorn reformai_api.api:app --reload
"""
import logging
from typing import Iterator, List, Optional

from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from reformai.llm_factory import LLMInfo
from reformai.llm_util.llm_executor import LLMExhaustedError, LLMModelBase, LLMModelFromName
from reformai.schedule.optimize_renovation import NoTasksToScheduleError, ScheduleOptimizationError
from reformai.tracker.backup import BackupFormatError, backup_filename
from reformai.tracker.catalog import catalog_dict
from reformai.tracker.history import current_user_name
from reformai.tracker.media import MediaError, MediaTooLargeError, file_to_data_url, parse_data_url, check_size
from reformai.tracker.task_operations import Actor, SubTaskNotFoundError, TaskValidationError
from reformai.tracker.task_types import Category, HistoryEntry, Project, Task
from reformai.utils.reformai_dotenv import ReformAIDotEnv

from reformai_api.config import API_SETTINGS, StorageBackend
from reformai_api.database import create_tables, get_database
from reformai_api.models import (
    AddSubTaskRequest, APIError, AttachVideoRequest, CatalogResponse, CreateCategoryRequest, CreateProjectRequest,
    CreateTaskRequest, HealthResponse, HistoryResponse, ImportBackupResponse, LLMModel, OptimizeScheduleRequest,
    ScheduleRunResponse, SessionRequest, SessionResponse, StatsResponse, UpdateProjectRequest, UpdateTaskRequest,
)
from reformai_api.services.schedule_service import LLMModelsFactory, ScheduleService
from reformai_api.services.task_service import NotFoundError, TaskService
from reformai_api.storage import StorageError, TrackerStore
from reformai_api.supabase_service import SupabaseService, get_supabase_client

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Initialize FastAPI app
app = FastAPI(
    title="ReformAI API",
    description="REST API for ReformAI - Track renovation tasks and let AI sequence the work",
    version=API_VERSION,
)

if API_SETTINGS.cors_enabled:
    logger.info(f"CORS enabled for {API_SETTINGS.cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=API_SETTINGS.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# The .env values are only read, os.environ is left untouched.
reformai_dotenv = ReformAIDotEnv.load()
logger.info(f"Configuration loaded from: {reformai_dotenv.dotenv_path}")
logger.info(f"Storage backend: {API_SETTINGS.storage_backend.value}")

# Database initialization
if API_SETTINGS.storage_backend == StorageBackend.database:
    create_tables()


# Error mapping

def _error_response(status_code: int, message: str, details: Optional[dict] = None) -> JSONResponse:
    body = APIError(error=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(404, str(exc))


@app.exception_handler(SubTaskNotFoundError)
async def subtask_not_found_handler(request: Request, exc: SubTaskNotFoundError):
    return _error_response(404, str(exc))


@app.exception_handler(MediaTooLargeError)
async def media_too_large_handler(request: Request, exc: MediaTooLargeError):
    return _error_response(413, str(exc), {"max_upload_bytes": API_SETTINGS.max_upload_bytes})


@app.exception_handler(TaskValidationError)
@app.exception_handler(BackupFormatError)
@app.exception_handler(MediaError)
async def bad_request_handler(request: Request, exc: ValueError):
    return _error_response(400, str(exc))


@app.exception_handler(NoTasksToScheduleError)
async def no_tasks_handler(request: Request, exc: NoTasksToScheduleError):
    return _error_response(400, str(exc))


@app.exception_handler(ScheduleOptimizationError)
async def schedule_error_handler(request: Request, exc: ScheduleOptimizationError):
    return _error_response(502, str(exc))


@app.exception_handler(LLMExhaustedError)
async def llm_exhausted_handler(request: Request, exc: LLMExhaustedError):
    return _error_response(502, "Erro ao otimizar cronograma.", {"reason": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    return _error_response(503, str(exc))


# Dependencies

def get_store() -> Iterator[TrackerStore]:
    """Storage backend for dependency injection"""
    if API_SETTINGS.storage_backend == StorageBackend.supabase:
        yield SupabaseService(get_supabase_client(API_SETTINGS))
        return
    yield from get_database()


def get_actor(
    x_user_id: Optional[str] = Header(None),
    x_logged_in: Optional[str] = Header(None),
) -> Actor:
    """The user making the request, as sent by the frontend"""
    logged_in = (x_logged_in or "").strip().lower() in {"1", "true", "yes"}
    return Actor(name=current_user_name(logged_in), user_id=x_user_id)


def get_llm_models_factory() -> LLMModelsFactory:
    def factory(selected: Optional[str]) -> list[LLMModelBase]:
        return LLMModelFromName.from_selection(selected or API_SETTINGS.llm_model)
    return factory


def get_task_service(store: TrackerStore = Depends(get_store)) -> TaskService:
    return TaskService(store, history_limit=API_SETTINGS.history_limit)


def get_schedule_service(
    store: TrackerStore = Depends(get_store),
    llm_models_factory: LLMModelsFactory = Depends(get_llm_models_factory),
) -> ScheduleService:
    return ScheduleService(store, llm_models_factory, history_limit=API_SETTINGS.history_limit)


def _task_response(task: Task) -> dict:
    return task.to_wire_dict()


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        version=API_VERSION,
        storage_backend=API_SETTINGS.storage_backend.value,
        available_models=len(LLMInfo.obtain_info().llm_config_items),
    )


# LLM models endpoint
@app.get("/api/models", response_model=List[LLMModel])
async def get_models():
    """Get available LLM models, 'auto' first"""
    return [
        LLMModel(id=item.id, label=item.label, comment=item.comment, priority=item.priority or 0)
        for item in LLMInfo.obtain_info().llm_config_items
    ]


@app.get("/api/catalog", response_model=CatalogResponse)
async def get_catalog():
    """Room names, suggested task titles per trade, and the sub-step templates"""
    return catalog_dict()


# Projects

@app.get("/api/projects", response_model=List[Project])
async def list_projects(user_id: Optional[str] = None, service: TaskService = Depends(get_task_service)):
    return service.store.list_projects(user_id=user_id)


@app.post("/api/projects", response_model=Project, status_code=201)
async def create_project(
    request: CreateProjectRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    user_id = request.user_id or actor.user_id
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id or the X-User-Id header is required")
    return service.create_project(user_id, request.name, request.description, request.address)


@app.get("/api/projects/{project_id}", response_model=Project)
async def get_project(project_id: str, service: TaskService = Depends(get_task_service)):
    return service.get_project(project_id)


@app.patch("/api/projects/{project_id}", response_model=Project)
async def update_project(project_id: str, request: UpdateProjectRequest, service: TaskService = Depends(get_task_service)):
    return service.update_project(project_id, request.model_dump(exclude_unset=True))


@app.delete("/api/projects/{project_id}", status_code=204)
async def delete_project(project_id: str, service: TaskService = Depends(get_task_service)):
    service.delete_project(project_id)
    return Response(status_code=204)


# Categories

@app.get("/api/categories", response_model=List[Category])
async def list_categories(service: TaskService = Depends(get_task_service)):
    return service.store.list_categories()


@app.post("/api/categories", response_model=Category, status_code=201)
async def create_category(request: CreateCategoryRequest, service: TaskService = Depends(get_task_service)):
    return service.create_category(request.name, request.description, request.icon)


# Tasks

@app.get("/api/tasks")
async def list_tasks(
    project_id: Optional[str] = None,
    room: Optional[str] = None,
    service: TaskService = Depends(get_task_service),
):
    """Tasks in the order they were added, optionally for one project or room"""
    return [_task_response(task) for task in service.store.list_tasks(project_id=project_id, room=room)]


@app.post("/api/tasks", status_code=201)
async def create_task(
    request: CreateTaskRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    for photo in request.photos or []:
        check_size(parse_data_url(photo)[1], API_SETTINGS.max_upload_bytes, "photo")
    if request.video_url:
        check_size(parse_data_url(request.video_url)[1], API_SETTINGS.max_upload_bytes, "video")

    task = service.create_task(
        request.title,
        request.room,
        actor,
        description=request.description,
        priority=request.priority,
        project_id=request.project_id,
        category_id=request.category_id,
        photos=request.photos,
        video_url=request.video_url,
    )
    return _task_response(task)


@app.delete("/api/tasks", response_model=HistoryEntry)
async def reset_tasks(
    project_id: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """Delete every task of the project, the whole renovation when no project is given"""
    return service.reset_tasks(actor, project_id=project_id)


@app.get("/api/tasks/{task_id}")
async def get_task(task_id: str, service: TaskService = Depends(get_task_service)):
    return _task_response(service.get_task(task_id))


@app.patch("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    request: UpdateTaskRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return _task_response(service.update_task(task_id, request.model_dump(exclude_unset=True), actor))


@app.delete("/api/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(task_id, actor)
    return Response(status_code=204)


@app.post("/api/tasks/{task_id}/subtasks")
async def add_subtask(
    task_id: str,
    request: AddSubTaskRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return _task_response(service.add_subtask(task_id, request.title, actor))


@app.post("/api/tasks/{task_id}/subtasks/{subtask_id}/toggle")
async def toggle_subtask(
    task_id: str,
    subtask_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return _task_response(service.toggle_subtask(task_id, subtask_id, actor))


@app.post("/api/tasks/{task_id}/photos")
async def upload_photos(
    task_id: str,
    files: List[UploadFile] = File(...),
    service: TaskService = Depends(get_task_service),
):
    """Attach photos to the task, each stored as a data URL"""
    photos = []
    for upload in files:
        content = await upload.read()
        photos.append(file_to_data_url(content, upload.filename, upload.content_type, API_SETTINGS.max_upload_bytes))
    return _task_response(service.attach_media(task_id, photos=photos))


@app.post("/api/tasks/{task_id}/video")
async def attach_video(
    task_id: str,
    request: AttachVideoRequest,
    service: TaskService = Depends(get_task_service),
):
    """Set the task video, given as a data URL"""
    _, content = parse_data_url(request.video_url)
    check_size(content, API_SETTINGS.max_upload_bytes, "video")
    return _task_response(service.attach_media(task_id, video_url=request.video_url))


# Dashboard

@app.get("/api/stats", response_model=StatsResponse)
async def get_stats(project_id: Optional[str] = None, service: TaskService = Depends(get_task_service)):
    return service.stats(project_id).to_dict()


@app.get("/api/history", response_model=HistoryResponse)
async def get_history(
    project_id: Optional[str] = None,
    limit: Optional[int] = None,
    service: TaskService = Depends(get_task_service),
):
    return HistoryResponse(entries=service.history(project_id, limit))


# Backup

@app.get("/api/backup/export")
async def export_backup(project_id: Optional[str] = None, service: TaskService = Depends(get_task_service)):
    """Download the task list as a JSON file"""
    content = service.export_backup(project_id)
    return Response(
        content=content.encode("utf-8"),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


@app.post("/api/backup/import", response_model=ImportBackupResponse)
async def import_backup(
    file: UploadFile = File(...),
    project_id: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """Replace the task list with the tasks from a JSON backup file"""
    raw = await file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise BackupFormatError("Erro ao ler o arquivo de backup.") from e
    tasks, entry = service.import_backup(text, actor, project_id)
    return ImportBackupResponse(imported=len(tasks), history_entry=entry)


# Session

@app.post("/api/session/login", response_model=SessionResponse)
async def login(
    request: Optional[SessionRequest] = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    request = request or SessionRequest()
    entry = service.record_session(True, user_id=request.user_id or actor.user_id, project_id=request.project_id)
    return SessionResponse(user=current_user_name(True), logged_in=True, history_entry=entry)


@app.post("/api/session/logout", response_model=SessionResponse)
async def logout(
    request: Optional[SessionRequest] = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    request = request or SessionRequest()
    entry = service.record_session(False, user_id=request.user_id or actor.user_id, project_id=request.project_id)
    return SessionResponse(user=current_user_name(False), logged_in=False, history_entry=entry)


# Schedule

@app.post("/api/schedule/optimize", response_model=ScheduleRunResponse)
def optimize_schedule(
    request: OptimizeScheduleRequest,
    actor: Actor = Depends(get_actor),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Ask the LLM for a phased schedule of the tasks. Blocks until the model answers."""
    run = service.optimize(actor, request.strategy, request.project_id, request.llm_model)
    return ScheduleRunResponse.model_validate(run)


@app.get("/api/schedule/runs", response_model=List[ScheduleRunResponse])
async def list_schedule_runs(
    project_id: Optional[str] = None,
    limit: int = 20,
    service: ScheduleService = Depends(get_schedule_service),
):
    return [ScheduleRunResponse.model_validate(run) for run in service.list_runs(project_id, limit)]


@app.get("/api/schedule/runs/{run_id}", response_model=ScheduleRunResponse)
async def get_schedule_run(run_id: str, service: ScheduleService = Depends(get_schedule_service)):
    return ScheduleRunResponse.model_validate(service.get_run(run_id))


@app.get("/api/schedule/runs/{run_id}/result")
async def get_schedule_run_result(run_id: str, service: ScheduleService = Depends(get_schedule_service)):
    """The schedule with the browser app's camelCase keys"""
    return service.run_result(run_id)


@app.get("/api/schedule/runs/{run_id}/markdown", response_class=PlainTextResponse)
async def get_schedule_run_markdown(run_id: str, service: ScheduleService = Depends(get_schedule_service)):
    """The schedule as markdown, for download"""
    return PlainTextResponse(
        service.run_markdown(run_id),
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="cronograma_{run_id}.md"'},
    )
