"""
Create llama-index LLM instances from the entries in llm_config.json.

Each entry names a llama-index class and the arguments for its constructor:

    "gemini-pro": {
        "comment": "Default model for schedule optimization.",
        "priority": 1,
        "class": "GoogleGenAI",
        "arguments": {"model": "gemini-3-pro-preview", "api_key": "${GEMINI_API_KEY}"}
    }

PROMPT> python -m reformai.llm_factory
"""
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional
from llama_index.core.llms.llm import LLM
from llama_index.llms.google_genai import GoogleGenAI
from llama_index.llms.ollama import Ollama
from llama_index.llms.openai import OpenAI
from llama_index.llms.openrouter import OpenRouter
from reformai.utils.reformai_llmconfig import ReformAILLMConfig

# Not a model. Cycle through the configured models by priority, if the first one fails, try the next one.
SPECIAL_AUTO_ID = 'auto'
SPECIAL_AUTO_LABEL = 'Auto'

logger = logging.getLogger(__name__)

__all__ = ["get_llm", "LLMInfo", "get_llm_names_by_priority", "SPECIAL_AUTO_ID", "is_valid_llm_name"]

LLM_CLASSES: dict[str, type[LLM]] = {
    "GoogleGenAI": GoogleGenAI,
    "OpenAI": OpenAI,
    "OpenRouter": OpenRouter,
    "Ollama": Ollama,
}


@lru_cache(maxsize=1)
def get_llm_config() -> ReformAILLMConfig:
    return ReformAILLMConfig.load()


def llm_config_dict() -> dict[str, Any]:
    return get_llm_config().llm_config_dict


@dataclass
class LLMConfigItem:
    id: str
    label: str
    comment: str = ""
    priority: Optional[int] = None


@dataclass
class LLMInfo:
    llm_config_items: list[LLMConfigItem]

    @classmethod
    def obtain_info(cls) -> 'LLMInfo':
        items = [LLMConfigItem(id=SPECIAL_AUTO_ID, label=SPECIAL_AUTO_LABEL, comment="Try the models by priority.")]
        for config_id, config in llm_config_dict().items():
            priority = config.get("priority")
            label = f"{config_id} (prio: {priority})" if priority else config_id
            items.append(LLMConfigItem(id=config_id, label=label, comment=config.get("comment", ""), priority=priority))
        return cls(llm_config_items=items)


def get_llm_names_by_priority() -> list[str]:
    """
    Names of the models that have a priority, lowest value first.
    """
    configs = [(name, config) for name, config in llm_config_dict().items() if config.get("priority") is not None]
    configs.sort(key=lambda x: x[1]["priority"])
    return [name for name, _ in configs]


def is_valid_llm_name(llm_name: str) -> bool:
    return llm_name in llm_config_dict()


def get_llm(llm_name: Optional[str] = None, **kwargs: Any) -> LLM:
    """
    Returns an LLM instance based on the config.

    :param llm_name: The name/key of the LLM to instantiate. If None, the first model by priority.
    :param kwargs: Extra constructor arguments, overriding the ones from the config.
    """
    if not llm_name:
        llm_names = get_llm_names_by_priority()
        if not llm_names:
            raise ValueError("No LLM models configured")
        llm_name = llm_names[0]

    if llm_name == SPECIAL_AUTO_ID:
        raise ValueError(f"The special {SPECIAL_AUTO_ID!r} is not a LLM model that can be created. Please use a valid LLM name.")

    if not is_valid_llm_name(llm_name):
        logger.error(f"Cannot create LLM, the llm_name {llm_name!r} is not found in llm_config.json.")
        raise ValueError(f"Cannot create LLM, the llm_name {llm_name!r} is not found in llm_config.json.")

    config = llm_config_dict()[llm_name]
    class_name = config.get("class")
    llm_class = LLM_CLASSES.get(class_name)
    if llm_class is None:
        raise ValueError(f"Invalid LLM class name in config.json: {class_name!r}")

    arguments = {**config.get("arguments", {}), **kwargs}
    return llm_class(**arguments)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    for name in get_llm_names_by_priority():
        print(f"- {name}")
