"""
PURPOSE: Run the AI schedule optimizer for a project's tasks and keep a record of every run
SRP and DRY check: Pass - Orchestrates LLMExecutor + OptimizeRenovation and persistence of the run, prompt logic lives in reformai.schedule
"""
import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional
from reformai.llm_util.llm_executor import LLMExecutor, LLMExhaustedError, LLMModelBase
from reformai.schedule.optimize_renovation import (
    NO_TASKS_MESSAGE, NoTasksToScheduleError, OptimizationResult, OptimizationStrategy, OptimizeRenovation
)
from reformai.tracker.history import HistoryAction, make_history_entry
from reformai.tracker.task_operations import Actor
from reformai.tracker.task_types import HistoryEntryType, new_id
from reformai_api.services.task_service import NotFoundError
from reformai_api.storage import TrackerStore

logger = logging.getLogger(__name__)

FAILED_MESSAGE = "Erro ao otimizar cronograma."

LLMModelsFactory = Callable[[Optional[str]], list[LLMModelBase]]


class ScheduleService:
    """Service responsible for AI schedule runs"""

    def __init__(self, store: TrackerStore, llm_models_factory: LLMModelsFactory, history_limit: int = 100):
        self.store = store
        self.llm_models_factory = llm_models_factory
        self.history_limit = history_limit

    def optimize(
        self,
        actor: Actor,
        strategy: OptimizationStrategy = OptimizationStrategy.fastest,
        project_id: Optional[str] = None,
        llm_model: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Returns the stored run. Raises NoTasksToScheduleError when there is nothing to schedule,
        and LLMExhaustedError when no model produced a usable schedule, after marking the run as failed.
        """
        strategy = OptimizationStrategy(strategy)
        if project_id and self.store.get_project(project_id) is None:
            raise NotFoundError(f"Project {project_id!r} not found")
        tasks = self.store.list_tasks(project_id=project_id)
        if not tasks:
            raise NoTasksToScheduleError(NO_TASKS_MESSAGE)

        run = self.store.create_schedule_run({
            "run_id": new_id(),
            "project_id": project_id,
            "strategy": strategy.value,
            "llm_model": llm_model,
            "task_count": len(tasks),
            "status": "running",
        })
        run_id = run["run_id"]
        logger.info(f"Schedule run {run_id}: {len(tasks)} tasks, strategy={strategy.value}, llm_model={llm_model!r}")

        start_time = time.perf_counter()
        executor: Optional[LLMExecutor] = None
        try:
            try:
                executor = LLMExecutor(self.llm_models_factory(llm_model))
            except ValueError as e:
                raise LLMExhaustedError(f"No LLM available: {e}") from e
            optimized: OptimizeRenovation = executor.run(
                lambda llm: OptimizeRenovation.execute(llm, tasks, strategy)
            )
        except LLMExhaustedError as e:
            logger.error(f"Schedule run {run_id} failed: {e}")
            self.store.update_schedule_run(run_id, {
                "status": "failed",
                "error_message": FAILED_MESSAGE,
                "completed_at": datetime.utcnow(),
                "duration_seconds": time.perf_counter() - start_time,
                "attempt_count": executor.attempt_count if executor else 0,
            })
            raise

        unknown_ids = optimized.unknown_task_ids(task.id for task in tasks)
        if unknown_ids:
            logger.warning(f"Schedule run {run_id}: the model returned unknown task ids {unknown_ids}")

        updated = self.store.update_schedule_run(run_id, {
            "status": "completed",
            "result": optimized.response,
            "response_metadata": optimized.metadata,
            "unknown_task_ids": unknown_ids,
            "completed_at": datetime.utcnow(),
            "duration_seconds": time.perf_counter() - start_time,
            "attempt_count": executor.attempt_count,
        })

        entry = make_history_entry(
            HistoryEntryType.optimization,
            HistoryAction.OPTIMIZATION,
            f"Estratégia: {strategy.value}",
            user=actor.name,
            user_id=actor.user_id,
            project_id=project_id,
        )
        self.store.add_history([entry], self.history_limit)
        return updated or run

    def get_run(self, run_id: str) -> dict[str, Any]:
        run = self.store.get_schedule_run(run_id)
        if run is None:
            raise NotFoundError(f"Schedule run {run_id!r} not found")
        return run

    def list_runs(self, project_id: Optional[str] = None, limit: int = 20) -> list[dict[str, Any]]:
        return self.store.list_schedule_runs(project_id=project_id, limit=limit)

    def _completed_result(self, run_id: str) -> OptimizationResult:
        run = self.get_run(run_id)
        if run.get("status") != "completed" or not run.get("result"):
            raise NotFoundError(f"Schedule run {run_id!r} has no result")
        return OptimizationResult.model_validate(run["result"])

    def run_result(self, run_id: str) -> dict[str, Any]:
        return self._completed_result(run_id).to_wire_dict()

    def run_markdown(self, run_id: str) -> str:
        return OptimizeRenovation.convert_to_markdown(self._completed_result(run_id))
