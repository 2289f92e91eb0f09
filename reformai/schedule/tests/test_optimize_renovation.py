import json
import unittest
from reformai.llm_util.response_mockllm import ResponseMockLLM
from reformai.schedule.optimize_renovation import (
    PARSE_ERROR_MESSAGE, NoTasksToScheduleError, OptimizationResult, OptimizationStrategy, OptimizeRenovation,
    ScheduleOptimizationError
)
from reformai.tracker.task_types import Priority, SubTask, Task


def sample_tasks() -> list[Task]:
    return [
        Task(id="t1", title="Trocar fiação completa", room="Sala", priority=Priority.ALTA,
             sub_tasks=[SubTask(title="Mapeamento"), SubTask(title="Testes")]),
        Task(id="t2", title="Pintura de paredes", room="Sala", priority=Priority.MEDIA),
    ]


def sample_response(task_ids=("t1", "t2")) -> str:
    tasks = [
        {
            "id": task_id,
            "title": f"Tarefa {task_id}",
            "room": "Sala",
            "priority": "Alta",
            "category": "Elétrica",
            "sequence_order": index + 1,
            "reasoning": "Infra antes do acabamento.",
        }
        for index, task_id in enumerate(task_ids)
    ]
    return json.dumps({
        "phases": [
            {"phase_name": "Infra", "order": 1, "tasks": tasks[:1], "tips": ["Desligue o disjuntor geral."]},
            {"phase_name": "Pintura", "order": 2, "tasks": tasks[1:], "tips": []},
        ],
        "total_estimated_days": 12,
        "general_advice": "Proteja o piso antes de pintar.",
    }, ensure_ascii=False)


class TestOptimizeRenovation(unittest.TestCase):
    def test_format_query(self):
        # Act
        query = OptimizeRenovation.format_query(sample_tasks(), OptimizationStrategy.priority)

        # Assert
        self.assertIn("Estratégia solicitada: PRIORITY", query)
        self.assertIn("'Alta' primeiro", query)
        self.assertIn('"subTasks": ["Mapeamento", "Testes"]', query)
        self.assertIn('"priority": "Média"', query)

    def test_execute(self):
        # Arrange
        llm = ResponseMockLLM(responses=[sample_response()])

        # Act
        result = OptimizeRenovation.execute(llm, sample_tasks(), OptimizationStrategy.fastest)

        # Assert
        self.assertEqual(result.strategy, OptimizationStrategy.fastest)
        self.assertEqual(result.result.total_estimated_days, 12)
        self.assertEqual([phase.phase_name for phase in result.result.phases], ["Infra", "Pintura"])
        self.assertEqual(result.unknown_task_ids(["t1", "t2"]), [])
        self.assertIn("llm_classname", result.metadata)
        self.assertIn("duration", result.metadata)
        self.assertEqual(llm.call_count, 1)

    def test_unknown_task_ids(self):
        llm = ResponseMockLLM(responses=[sample_response(("t1", "ghost"))])
        result = OptimizeRenovation.execute(llm, sample_tasks(), "room")
        self.assertEqual(result.unknown_task_ids(["t1", "t2"]), ["ghost"])

    def test_no_tasks(self):
        llm = ResponseMockLLM(responses=[sample_response()])
        with self.assertRaises(NoTasksToScheduleError):
            OptimizeRenovation.execute(llm, [], OptimizationStrategy.fastest)
        self.assertEqual(llm.call_count, 0)

    def test_unparseable_response(self):
        llm = ResponseMockLLM(responses=["Desculpe, não consigo ajudar."])
        with self.assertRaises(ScheduleOptimizationError) as context:
            OptimizeRenovation.execute(llm, sample_tasks())
        self.assertEqual(str(context.exception), PARSE_ERROR_MESSAGE)

    def test_llm_failure(self):
        llm = ResponseMockLLM(responses=["raise:quota exceeded"])
        with self.assertRaises(ScheduleOptimizationError):
            OptimizeRenovation.execute(llm, sample_tasks())

    def test_markdown(self):
        result = OptimizationResult.model_validate_json(sample_response())

        markdown = OptimizeRenovation.convert_to_markdown(result)

        self.assertTrue(markdown.startswith("# Cronograma da obra"))
        self.assertIn("Prazo estimado: 12 dias", markdown)
        self.assertIn("## 1. Infra", markdown)
        self.assertIn("- Desligue o disjuntor geral.", markdown)
        self.assertIn("## Conselho geral", markdown)
        self.assertLess(markdown.index("## 1. Infra"), markdown.index("## 2. Pintura"))

    def test_browser_shape(self):
        # Arrange
        browser_json = json.dumps({
            "phases": [{"phaseName": "Infra", "order": 1, "tips": [], "tasks": [
                {"id": "t1", "title": "Trocar fiação completa", "room": "Sala", "category": "Elétrica", "sequenceOrder": 1},
            ]}],
            "totalEstimatedDays": 5,
            "generalAdvice": "Comece pela elétrica.",
        })

        # Act
        result = OptimizationResult.model_validate_json(browser_json)
        wire = result.to_wire_dict()

        # Assert
        self.assertEqual(result.phases[0].phase_name, "Infra")
        self.assertEqual(result.phases[0].tasks[0].sequence_order, 1)
        self.assertEqual(wire["totalEstimatedDays"], 5)
        self.assertEqual(wire["generalAdvice"], "Comece pela elétrica.")
        self.assertEqual(wire["phases"][0]["phaseName"], "Infra")
        self.assertEqual(wire["phases"][0]["tasks"][0]["sequenceOrder"], 1)
        self.assertIn("total_estimated_days", result.model_dump())


if __name__ == '__main__':
    unittest.main()
