"""
Ask an LLM to sequence the renovation tasks into construction phases.

The model plays an experienced master builder. It receives the task list and a strategy,
and returns the phases (Demolição, Infra, Alvenaria, Revestimento, Pintura, Finalização)
with the tasks in execution order, a reasoning per task, tips per phase, an estimate of
the total number of days and general advice.

PROMPT> python -m reformai.schedule.optimize_renovation
"""
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from math import ceil
from typing import Iterable, Optional
from llama_index.core.llms import ChatMessage, MessageRole
from llama_index.core.llms.llm import LLM
from pydantic import AliasChoices, BaseModel, Field, ValidationError
from reformai.tracker.task_types import Task

logger = logging.getLogger(__name__)

PARSE_ERROR_MESSAGE = "Erro ao processar a otimização da obra."
NO_TASKS_MESSAGE = "Nenhuma tarefa para otimizar."


class ScheduleOptimizationError(Exception):
    """Raised when no schedule can be produced for the tasks."""
    pass


class NoTasksToScheduleError(ScheduleOptimizationError):
    pass


class OptimizationStrategy(str, Enum):
    fastest = "fastest"
    priority = "priority"
    room = "room"


STRATEGY_DESCRIPTIONS: dict[OptimizationStrategy, str] = {
    OptimizationStrategy.fastest: "Foco total em velocidade técnica e dependências lógicas (ex: secagem, infra antes de acabamento).",
    OptimizationStrategy.priority: "Priorize as tarefas marcadas como 'Alta' primeiro, respeitando apenas dependências críticas.",
    OptimizationStrategy.room: "Agrupe as tarefas para finalizar cômodos inteiros um de cada vez para liberar espaço na casa.",
}


class OptimizedTask(BaseModel):
    id: str = Field(description="The id of the task, copied unchanged from the input.")
    title: str = Field(description="The title of the task.")
    room: str = Field(description="The room where the task takes place.")
    priority: Optional[str] = Field(None, description="The priority of the task: Alta, Média or Baixa.")
    category: str = Field(description="The trade of the task, such as Elétrica, Hidráulica, Pintura.")
    sequence_order: int = Field(
        validation_alias=AliasChoices("sequence_order", "sequenceOrder"),
        serialization_alias="sequenceOrder",
        description="Position of the task in the overall execution order, starting from 1.",
    )
    reasoning: Optional[str] = Field(None, description="Why the task is placed at this point in the sequence.")


class ConstructionPhase(BaseModel):
    phase_name: str = Field(
        validation_alias=AliasChoices("phase_name", "phaseName"),
        serialization_alias="phaseName",
        description="Name of the phase, such as Demolição or Pintura.",
    )
    order: int = Field(description="Position of the phase, starting from 1.")
    tasks: list[OptimizedTask] = Field(description="The tasks of this phase, in execution order.")
    tips: list[str] = Field(description="Practical tips for this phase.")


class OptimizationResult(BaseModel):
    phases: list[ConstructionPhase] = Field(description="The construction phases in execution order.")
    total_estimated_days: int = Field(
        validation_alias=AliasChoices("total_estimated_days", "totalEstimatedDays"),
        serialization_alias="totalEstimatedDays",
        description="Estimated number of days for the whole renovation.",
    )
    general_advice: str = Field(
        validation_alias=AliasChoices("general_advice", "generalAdvice"),
        serialization_alias="generalAdvice",
        description="General advice for the renovation.",
    )

    def to_wire_dict(self) -> dict:
        """Same shape as the browser app, camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


SYSTEM_PROMPT = """
Você é um Mestre de Obras e Engenheiro Civil experiente.
Você recebe uma lista de tarefas para uma reforma e organiza a sequência de execução.

Regras de Otimização:
1. Organize em fases: Demolição, Infra, Alvenaria, Revestimento, Pintura, Finalização.
2. Respeite a estratégia solicitada.
3. Para cada tarefa, explique o 'reasoning' (por que ela está nessa ordem).
4. Use o mesmo 'id' de cada tarefa fornecida. Não invente tarefas.

Responda EXCLUSIVAMENTE em formato JSON.
"""


def tasks_for_prompt(tasks: Iterable[Task]) -> list[dict]:
    return [
        {
            "id": task.id,
            "title": task.title,
            "room": task.room,
            "priority": task.priority.value if hasattr(task.priority, "value") else task.priority,
            "subTasks": [subtask.title for subtask in task.sub_tasks],
        }
        for task in tasks
    ]


@dataclass
class OptimizeRenovation:
    """
    The schedule proposed by the LLM, together with the prompt that produced it.
    """
    system_prompt: str
    user_prompt: str
    strategy: OptimizationStrategy
    response: dict
    metadata: dict

    @classmethod
    def format_query(cls, tasks: list[Task], strategy: OptimizationStrategy = OptimizationStrategy.fastest) -> str:
        if not isinstance(tasks, list):
            raise ValueError("Invalid tasks.")
        strategy = OptimizationStrategy(strategy)
        tasks_json = json.dumps(tasks_for_prompt(tasks), ensure_ascii=False)
        return (
            f"Estratégia solicitada: {strategy.value.upper()} - {STRATEGY_DESCRIPTIONS[strategy]}\n\n"
            f"Tarefas fornecidas (incluindo prioridade):\n{tasks_json}\n\n"
            f"Respeite a estratégia {strategy.value}."
        )

    @classmethod
    def execute(cls, llm: LLM, tasks: list[Task], strategy: OptimizationStrategy = OptimizationStrategy.fastest) -> 'OptimizeRenovation':
        """
        Invoke LLM with the tasks and the strategy.
        """
        if not isinstance(llm, LLM):
            raise ValueError("Invalid LLM instance.")
        if not tasks:
            raise NoTasksToScheduleError(NO_TASKS_MESSAGE)

        strategy = OptimizationStrategy(strategy)
        system_prompt = SYSTEM_PROMPT.strip()
        user_prompt = cls.format_query(tasks, strategy)
        logger.debug(f"User Prompt:\n{user_prompt}")

        chat_message_list = [
            ChatMessage(role=MessageRole.SYSTEM, content=system_prompt),
            ChatMessage(role=MessageRole.USER, content=user_prompt),
        ]

        sllm = llm.as_structured_llm(OptimizationResult)
        start_time = time.perf_counter()
        try:
            chat_response = sllm.chat(chat_message_list)
            result = cls._parse_response(chat_response)
        except Exception as e:
            logger.debug(f"LLM chat interaction failed: {e}")
            logger.error("LLM chat interaction failed.", exc_info=True)
            raise ScheduleOptimizationError(PARSE_ERROR_MESSAGE) from e

        end_time = time.perf_counter()
        duration = int(ceil(end_time - start_time))
        response_byte_count = len(chat_response.message.content.encode('utf-8'))
        logger.info(f"LLM chat interaction completed in {duration} seconds. Response byte count: {response_byte_count}")

        metadata = dict(llm.metadata)
        metadata["llm_classname"] = llm.class_name()
        metadata["duration"] = duration
        metadata["response_byte_count"] = response_byte_count

        return OptimizeRenovation(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            strategy=strategy,
            response=result.model_dump(),
            metadata=metadata,
        )

    @staticmethod
    def _parse_response(chat_response) -> OptimizationResult:
        raw = getattr(chat_response, "raw", None)
        if isinstance(raw, OptimizationResult):
            return raw
        content = chat_response.message.content or ""
        try:
            return OptimizationResult.model_validate_json(content)
        except ValidationError as e:
            raise ScheduleOptimizationError(PARSE_ERROR_MESSAGE) from e

    @property
    def result(self) -> OptimizationResult:
        return OptimizationResult.model_validate(self.response)

    def unknown_task_ids(self, known_ids: Iterable[str]) -> list[str]:
        """
        Ids in the schedule that don't belong to any of the submitted tasks.
        """
        known = set(known_ids)
        unknown = []
        for phase in self.result.phases:
            for task in phase.tasks:
                if task.id not in known and task.id not in unknown:
                    unknown.append(task.id)
        return unknown

    def to_dict(self, include_metadata=True, include_system_prompt=True, include_user_prompt=True) -> dict:
        d = self.response.copy()
        d['strategy'] = self.strategy.value
        if include_metadata:
            d['metadata'] = self.metadata
        if include_system_prompt:
            d['system_prompt'] = self.system_prompt
        if include_user_prompt:
            d['user_prompt'] = self.user_prompt
        return d

    @staticmethod
    def convert_to_markdown(result: OptimizationResult) -> str:
        rows = ["# Cronograma da obra", "", f"Prazo estimado: {result.total_estimated_days} dias", ""]
        for phase in sorted(result.phases, key=lambda p: p.order):
            rows.append(f"## {phase.order}. {phase.phase_name}")
            rows.append("")
            for task in sorted(phase.tasks, key=lambda t: t.sequence_order):
                line = f"{task.sequence_order}. **{task.title}** ({task.room}, {task.category})"
                if task.reasoning:
                    line += f": {task.reasoning}"
                rows.append(line)
            if phase.tips:
                rows.append("")
                rows.append("Dicas:")
                for tip in phase.tips:
                    rows.append(f"- {tip}")
            rows.append("")
        rows.append("## Conselho geral")
        rows.append("")
        rows.append(result.general_advice)
        return "\n".join(rows)

    def to_markdown(self) -> str:
        return self.convert_to_markdown(self.result)


if __name__ == "__main__":
    from reformai.llm_factory import get_llm
    from reformai.tracker.task_operations import create_task

    logging.basicConfig(level=logging.INFO)
    tasks = [
        create_task("Pintura de paredes", "Sala").task,
        create_task("Trocar fiação completa", "Sala").task,
        create_task("Colocação de porcelanato", "Cozinha").task,
    ]
    llm = get_llm()
    result = OptimizeRenovation.execute(llm, tasks, OptimizationStrategy.room)
    print(json.dumps(result.to_dict(include_system_prompt=False), indent=2, ensure_ascii=False))
    print(result.to_markdown())
