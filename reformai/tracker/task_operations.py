"""
State transitions for renovation tasks.

Every operation returns the changed task together with the history entries that the change produces,
so the caller can persist both in one go. Nothing here touches storage.

PROMPT> python -m reformai.tracker.task_operations
"""
from dataclasses import dataclass, field
from typing import Optional
from reformai.tracker.catalog import category_for_title, subtasks_for_title
from reformai.tracker.history import USER_GUEST, HistoryAction, make_history_entry
from reformai.tracker.task_types import (
    HistoryEntry, HistoryEntryType, Priority, SubTask, Task, TaskStatus, utc_now_iso
)


class TaskValidationError(ValueError):
    """Raised when a task or sub-task is missing a required field."""
    pass


class SubTaskNotFoundError(LookupError):
    """Raised when a sub-task id does not belong to the task."""
    pass


@dataclass
class Actor:
    """The user on whose behalf a change is made."""
    name: str = USER_GUEST
    user_id: Optional[str] = None


@dataclass
class TaskChange:
    task: Task
    history: list[HistoryEntry] = field(default_factory=list)


def _entry(actor: Actor, task: Task, entry_type: HistoryEntryType, action: str, details: str) -> HistoryEntry:
    return make_history_entry(
        entry_type,
        action,
        details,
        user=actor.name,
        user_id=actor.user_id,
        project_id=task.project_id,
    )


def create_task(
    title: str,
    room: str,
    description: str = "",
    priority: Priority = Priority.MEDIA,
    photos: Optional[list[str]] = None,
    video_url: Optional[str] = None,
    project_id: Optional[str] = None,
    category_id: Optional[str] = None,
    actor: Optional[Actor] = None,
) -> TaskChange:
    actor = actor or Actor()
    title = (title or "").strip()
    room = (room or "").strip()
    if not title:
        raise TaskValidationError("A task needs a title.")
    if not room:
        raise TaskValidationError("A task needs a room.")

    task = Task(
        project_id=project_id,
        category_id=category_id,
        user_id=actor.user_id,
        title=title,
        room=room,
        description=description or "",
        priority=priority,
        status=TaskStatus.pending,
        category=category_for_title(title),
        sub_tasks=subtasks_for_title(title),
        photos=list(photos) if photos else None,
        video_url=video_url or None,
        created_at=utc_now_iso(),
    )
    entry = _entry(actor, task, HistoryEntryType.creation, HistoryAction.TASK_CREATED, f"{task.title} em {task.room}")
    return TaskChange(task=task, history=[entry])


def toggle_subtask(task: Task, subtask_id: str, actor: Optional[Actor] = None) -> TaskChange:
    actor = actor or Actor()
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        raise SubTaskNotFoundError(f"Sub-task {subtask_id!r} not found in task {task.id!r}.")

    new_state = not subtask.completed
    new_subtasks = [
        st.model_copy(update={"completed": new_state}) if st.id == subtask_id else st
        for st in task.sub_tasks
    ]
    all_done = len(new_subtasks) > 0 and all(st.completed for st in new_subtasks)

    history = []
    if new_state:
        history.append(_entry(actor, task, HistoryEntryType.completion, HistoryAction.SUBTASK_COMPLETED,
                              f"{subtask.title} - {task.title} ({task.room})"))
    else:
        history.append(_entry(actor, task, HistoryEntryType.update, HistoryAction.SUBTASK_REOPENED,
                              f"{subtask.title} - {task.title} ({task.room})"))

    if all_done and task.status != TaskStatus.completed:
        history.append(_entry(actor, task, HistoryEntryType.completion, HistoryAction.TASK_COMPLETED,
                              f"{task.title} em {task.room}"))

    updated = task.model_copy(update={
        "sub_tasks": new_subtasks,
        "status": TaskStatus.completed if all_done else TaskStatus.pending,
    })
    return TaskChange(task=updated, history=history)


def add_manual_subtask(task: Task, title: str, actor: Optional[Actor] = None) -> TaskChange:
    actor = actor or Actor()
    title = (title or "").strip()
    if not title:
        raise TaskValidationError("A sub-task needs a title.")

    # The task status is left as is, a completed task stays completed.
    updated = task.model_copy(update={"sub_tasks": [*task.sub_tasks, SubTask(title=title)]})
    entry = _entry(actor, task, HistoryEntryType.update, HistoryAction.MANUAL_SUBTASK_ADDED, f"{title} para {task.title}")
    return TaskChange(task=updated, history=[entry])


EDITABLE_FIELDS = ("title", "room", "description", "priority", "category", "category_id", "project_id")


def update_task(task: Task, changes: dict, actor: Optional[Actor] = None) -> TaskChange:
    actor = actor or Actor()
    update = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS and value is not None}
    for key in ("title", "room"):
        if key in update:
            update[key] = str(update[key]).strip()
            if not update[key]:
                raise TaskValidationError(f"A task needs a {key}.")
    if "priority" in update:
        update["priority"] = Priority(update["priority"])
    if not update:
        return TaskChange(task=task)

    updated = task.model_copy(update=update)
    changed_fields = ", ".join(sorted(update.keys()))
    entry = _entry(actor, updated, HistoryEntryType.update, HistoryAction.TASK_UPDATED,
                   f"{updated.title} em {updated.room}: {changed_fields}")
    return TaskChange(task=updated, history=[entry])


def attach_media(task: Task, photos: Optional[list[str]] = None, video_url: Optional[str] = None) -> Task:
    update: dict = {}
    if photos:
        update["photos"] = [*(task.photos or []), *photos]
    if video_url:
        update["video_url"] = video_url
    return task.model_copy(update=update) if update else task


def delete_task_entry(task: Task, actor: Optional[Actor] = None) -> HistoryEntry:
    actor = actor or Actor()
    return _entry(actor, task, HistoryEntryType.deletion, HistoryAction.TASK_DELETED, f"{task.title} em {task.room}")


if __name__ == "__main__":
    change = create_task("Pintura de paredes", "Sala", priority=Priority.ALTA)
    task = change.task
    for subtask in list(task.sub_tasks):
        change = toggle_subtask(task, subtask.id)
        task = change.task
        for entry in change.history:
            print(f"{entry.type.value}: {entry.action} - {entry.details}")
    print(f"status: {task.status.value}")
