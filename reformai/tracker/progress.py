"""
Completion percentages for tasks, rooms and priorities.

A completed task counts as 100% regardless of its checklist. Otherwise progress is the share of done sub-tasks.
Percentages are rounded half-up, the same way the dashboard in the browser app rounds them.
"""
import math
from dataclasses import dataclass, field
from reformai.tracker.task_types import Priority, Task, TaskStatus


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_task_progress(task: Task) -> int:
    if task.status == TaskStatus.completed:
        return 100
    if not task.sub_tasks:
        return 0
    completed = sum(1 for subtask in task.sub_tasks if subtask.completed)
    return round_half_up(completed / len(task.sub_tasks) * 100)


@dataclass
class ProgressBucket:
    total: int = 0
    progress: int = 0

    def to_dict(self) -> dict:
        return {"total": self.total, "progress": self.progress}


@dataclass
class ProgressStats:
    total_progress: int = 0
    by_room: dict[str, ProgressBucket] = field(default_factory=dict)
    by_priority: dict[str, ProgressBucket] = field(default_factory=lambda: {p.value: ProgressBucket() for p in Priority})

    def to_dict(self) -> dict:
        return {
            "total_progress": self.total_progress,
            "by_room": {room: bucket.to_dict() for room, bucket in self.by_room.items()},
            "by_priority": {priority: bucket.to_dict() for priority, bucket in self.by_priority.items()},
        }


def calculate_stats(tasks: list[Task]) -> ProgressStats:
    stats = ProgressStats()
    if not tasks:
        return stats

    # Sum per bucket first, average once all tasks are counted.
    progress_sum = 0
    for task in tasks:
        progress = calculate_task_progress(task)
        progress_sum += progress

        room_bucket = stats.by_room.setdefault(task.room, ProgressBucket())
        room_bucket.total += 1
        room_bucket.progress += progress

        priority_bucket = stats.by_priority[Priority(task.priority).value]
        priority_bucket.total += 1
        priority_bucket.progress += progress

    stats.total_progress = round_half_up(progress_sum / len(tasks))
    for bucket in list(stats.by_room.values()) + list(stats.by_priority.values()):
        if bucket.total > 0:
            bucket.progress = round_half_up(bucket.progress / bucket.total)
    return stats
