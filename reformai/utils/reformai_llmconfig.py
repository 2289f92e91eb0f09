"""
Load ReformAI's llm_config.json file, containing LLM configurations.

The REFORMAI_LLM_CONFIG_JSON environment variable may hold the whole json, for deployments without the file.
Values like "${GEMINI_API_KEY}" are substituted from the environment and the .env file.

PROMPT> python -m reformai.utils.reformai_llmconfig
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
import json
import logging
import os
from reformai.utils.reformai_config import ReformAIConfig
from reformai.utils.reformai_dotenv import ReformAIDotEnv

logger = logging.getLogger(__name__)


@dataclass
class ReformAILLMConfig:
    llm_config_json_path: Optional[Path]
    llm_config_dict_raw: dict[str, Any]
    llm_config_dict: dict[str, Any]

    @classmethod
    def load(cls) -> 'ReformAILLMConfig':
        config = ReformAIConfig.load()
        dotenv = ReformAIDotEnv.load()

        env_override = os.environ.get("REFORMAI_LLM_CONFIG_JSON")
        llm_config_dict_raw: Optional[dict[str, Any]] = None
        if env_override:
            try:
                llm_config_dict_raw = json.loads(env_override)
                logger.info("Loaded llm_config.json from REFORMAI_LLM_CONFIG_JSON environment override")
            except json.JSONDecodeError as exc:
                logger.error("Failed to parse REFORMAI_LLM_CONFIG_JSON override. Falling back to the file.", exc_info=exc)

        if llm_config_dict_raw is None:
            llm_config_dict_raw = cls.load_llm_config(config.llm_config_json_path)

        return cls(
            llm_config_json_path=config.llm_config_json_path,
            llm_config_dict_raw=llm_config_dict_raw,
            llm_config_dict=cls.substitute_env_vars(llm_config_dict_raw, dotenv.dotenv_dict),
        )

    @classmethod
    def load_llm_config(cls, llm_config_json_path: Optional[Path]) -> dict[str, Any]:
        if llm_config_json_path is None:
            logger.error("llm_config.json not found. Using an empty dictionary.")
            return {}
        try:
            with open(llm_config_json_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            logger.error(f"llm_config.json not found at {llm_config_json_path}. Using an empty dictionary.")
            return {}
        except json.JSONDecodeError as e:
            raise ValueError(f"Error decoding JSON from {llm_config_json_path}: {e}")

    @classmethod
    def substitute_env_vars(cls, config: dict[str, Any], env_vars: dict[str, str]) -> dict[str, Any]:
        """Recursively substitutes "${NAME}" strings with values from env_vars."""

        def replace_value(value: Any) -> Any:
            if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                var_name = value[2:-1]
                if var_name in env_vars:
                    return env_vars[var_name]
                logger.warning(f"Environment variable '{var_name}' not found.")
            return value

        def process_item(item):
            if isinstance(item, dict):
                return {k: process_item(v) for k, v in item.items()}
            if isinstance(item, list):
                return [process_item(i) for i in item]
            return replace_value(item)

        return process_item(config)

    def __repr__(self):
        return f"ReformAILLMConfig(llm_config_json_path={self.llm_config_json_path!r}, llm_config_dict.keys()={self.llm_config_dict.keys()!r})"


if __name__ == "__main__":
    print(ReformAILLMConfig.load())
