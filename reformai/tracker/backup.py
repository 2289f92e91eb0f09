"""
Export and import of the task list as a JSON backup file.

An import replaces the whole task list.
"""
import json
import logging
from datetime import date
from typing import Optional
from pydantic import ValidationError
from reformai.tracker.history import HistoryAction, make_history_entry, USER_GUEST
from reformai.tracker.task_types import HistoryEntry, HistoryEntryType, Task

logger = logging.getLogger(__name__)

INVALID_FORMAT_MESSAGE = "Arquivo inválido: Formato de backup não reconhecido."
UNREADABLE_MESSAGE = "Erro ao ler o arquivo de backup."


class BackupFormatError(ValueError):
    """Raised when a backup file is not a JSON array of tasks."""
    pass


def export_tasks_json(tasks: list[Task]) -> str:
    return json.dumps([task.to_wire_dict() for task in tasks], indent=2, ensure_ascii=False)


def backup_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"backup_obra_{day.day}-{day.month}-{day.year}.json"


def import_tasks_json(text: str) -> list[Task]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise BackupFormatError(UNREADABLE_MESSAGE) from e

    if not isinstance(data, list):
        raise BackupFormatError(INVALID_FORMAT_MESSAGE)

    tasks = []
    for index, item in enumerate(data):
        try:
            tasks.append(Task.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Backup item {index} is not a valid task: {e}")
            raise BackupFormatError(UNREADABLE_MESSAGE) from e
    return tasks


def import_history_entry(task_count: int, user: str = USER_GUEST, user_id: Optional[str] = None, project_id: Optional[str] = None) -> HistoryEntry:
    return make_history_entry(
        HistoryEntryType.update,
        HistoryAction.BACKUP_IMPORTED,
        f"{task_count} tarefas restauradas.",
        user=user,
        user_id=user_id,
        project_id=project_id,
    )
