"""
Activity history of a renovation: who created, changed, completed, optimized or removed what.
"""
import time
from typing import Optional
from reformai.tracker.task_types import HistoryEntry, HistoryEntryType

HISTORY_LIMIT = 100

USER_LOGGED_IN = "Mestre"
USER_GUEST = "Visitante"


class HistoryAction:
    TASK_CREATED = "Nova tarefa adicionada"
    SUBTASK_COMPLETED = "Sub-etapa concluída"
    SUBTASK_REOPENED = "Sub-etapa reaberta"
    TASK_COMPLETED = "Tarefa finalizada"
    TASK_UPDATED = "Tarefa atualizada"
    TASK_DELETED = "Tarefa removida"
    MANUAL_SUBTASK_ADDED = "Etapa manual adicionada"
    BACKUP_IMPORTED = "Importação de Backup"
    OPTIMIZATION = "Otimização AI Executada"
    PROJECT_RESET = "Projeto Zerado"
    LOGIN = "Login"
    LOGOUT = "Logout"


def current_user_name(is_logged_in: bool) -> str:
    return USER_LOGGED_IN if is_logged_in else USER_GUEST


def now_ms() -> int:
    return int(time.time() * 1000)


def make_history_entry(
    entry_type: HistoryEntryType,
    action: str,
    details: str,
    user: str = USER_GUEST,
    user_id: Optional[str] = None,
    project_id: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> HistoryEntry:
    return HistoryEntry(
        type=entry_type,
        action=action,
        details=details,
        user=user,
        user_id=user_id,
        project_id=project_id,
        timestamp=now_ms() if timestamp is None else timestamp,
    )


def sort_history(entries: list[HistoryEntry]) -> list[HistoryEntry]:
    """Newest first."""
    return sorted(entries, key=lambda entry: entry.timestamp, reverse=True)


def prepend_history(history: list[HistoryEntry], entry: HistoryEntry, limit: int = HISTORY_LIMIT) -> list[HistoryEntry]:
    return [entry, *history][:limit]


def make_session_entry(logging_in: bool, user_id: Optional[str] = None, project_id: Optional[str] = None) -> HistoryEntry:
    """
    The entry is attributed to the user as they were before the change:
    a login is recorded by the guest, a logout by the master user.
    """
    if logging_in:
        action, details, user = HistoryAction.LOGIN, "Usuário mestre conectado.", USER_GUEST
    else:
        action, details, user = HistoryAction.LOGOUT, "Usuário mestre desconectado.", USER_LOGGED_IN
    return make_history_entry(HistoryEntryType.update, action, details, user=user, user_id=user_id, project_id=project_id)


def make_reset_entry(user: str = USER_GUEST, user_id: Optional[str] = None, project_id: Optional[str] = None) -> HistoryEntry:
    return make_history_entry(
        HistoryEntryType.deletion,
        HistoryAction.PROJECT_RESET,
        "Todas as tarefas foram apagadas pelo usuário.",
        user=user,
        user_id=user_id,
        project_id=project_id,
    )
