"""
Run a function against a list of LLMs, falling back to the next one when an attempt fails.

All LLM invocations of the schedule optimizer go through this class, so a model that is down
or returns unparseable output doesn't end the request while other models are configured.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional
from llama_index.core.llms.llm import LLM
from reformai.llm_factory import SPECIAL_AUTO_ID, get_llm, get_llm_names_by_priority

logger = logging.getLogger(__name__)


class LLMExhaustedError(RuntimeError):
    """Raised when every configured LLM failed."""
    pass


class LLMModelBase:
    def create_llm(self) -> LLM:
        raise NotImplementedError("Subclasses must implement this method")


class LLMModelFromName(LLMModelBase):
    def __init__(self, name: str):
        self.name = name

    def create_llm(self) -> LLM:
        return get_llm(self.name)

    def __repr__(self) -> str:
        return f"LLMModelFromName(name='{self.name}')"

    @classmethod
    def from_names(cls, names: list[str]) -> list['LLMModelBase']:
        return [cls(name) for name in names]

    @classmethod
    def from_selection(cls, selected: Optional[str]) -> list['LLMModelBase']:
        """
        A single named model, or every prioritized model when the selection is empty or "auto".
        """
        if selected and selected != SPECIAL_AUTO_ID:
            return [cls(selected)]
        return cls.from_names(get_llm_names_by_priority())


class LLMModelWithInstance(LLMModelBase):
    def __init__(self, llm: LLM):
        self.llm = llm

    def create_llm(self) -> LLM:
        return self.llm

    def __repr__(self) -> str:
        return f"LLMModelWithInstance(llm={self.llm.__class__.__name__})"

    @classmethod
    def from_instances(cls, llms: list[LLM]) -> list['LLMModelBase']:
        return [cls(llm) for llm in llms]


@dataclass
class LLMAttempt:
    stage: str
    llm_model: LLMModelBase
    success: bool
    duration: float
    result: Optional[Any] = None
    exception: Optional[Exception] = None


class LLMExecutor:
    def __init__(self, llm_models: list[LLMModelBase]):
        if not llm_models:
            raise ValueError("No LLMs provided")
        self.llm_models = llm_models
        self.attempts: list[LLMAttempt] = []

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def successful_attempt(self) -> Optional[LLMAttempt]:
        for attempt in self.attempts:
            if attempt.success:
                return attempt
        return None

    def run(self, execute_function: Callable[[LLM], Any]) -> Any:
        if not callable(execute_function):
            raise TypeError("execute_function must be a function that takes a LLM parameter")

        self.attempts = []
        for llm_model in self.llm_models:
            attempt = self._try_one_attempt(llm_model, execute_function)
            self.attempts.append(attempt)
            if attempt.success:
                return attempt.result

        rows = [
            f" - Attempt {index} with {attempt.llm_model!r} failed during '{attempt.stage}' stage: {attempt.exception!r}"
            for index, attempt in enumerate(self.attempts)
        ]
        raise LLMExhaustedError("Failed to run. Exhausted all LLMs. Failure summary:\n" + "\n".join(rows))

    def _try_one_attempt(self, llm_model: LLMModelBase, execute_function: Callable[[LLM], Any]) -> LLMAttempt:
        start_time = time.perf_counter()
        try:
            llm = llm_model.create_llm()
        except Exception as e:
            logger.error(f"Error creating LLM {llm_model!r}: {e}")
            return LLMAttempt(stage='create', llm_model=llm_model, success=False, duration=time.perf_counter() - start_time, exception=e)

        try:
            result = execute_function(llm)
        except Exception as e:
            logger.error(f"Error running with LLM {llm_model!r}: {e}")
            return LLMAttempt(stage='execute', llm_model=llm_model, success=False, duration=time.perf_counter() - start_time, exception=e)

        duration = time.perf_counter() - start_time
        logger.info(f"Successfully ran with LLM {llm_model!r}. Duration: {duration:.2f} seconds")
        return LLMAttempt(stage='execute', llm_model=llm_model, success=True, duration=duration, result=result)
