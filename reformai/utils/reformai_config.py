"""
Locate ReformAI's config files, like .env and llm_config.json.

Finds config files by checking the following locations in order:
1. The directory specified by the REFORMAI_CONFIG_PATH environment variable. It must be an absolute path.
2. The current working directory (CWD).
3. The ReformAI project root directory.

PROMPT> python -m reformai.utils.reformai_config
PROMPT> REFORMAI_CONFIG_PATH='/home/obra/reformai' python -m reformai.utils.reformai_config
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar, Optional
import logging
import os

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class ConfigNameEnum(str, Enum):
    DOTENV = ".env"
    LLM_CONFIG_JSON = "llm_config.json"


@dataclass
class ReformAIConfig:
    """
    Resolved paths to the configuration files. Either path may be None when the file doesn't exist.
    """
    reformai_config_path: Optional[Path]
    dotenv_path: Optional[Path]
    llm_config_json_path: Optional[Path]

    _instance: ClassVar[Optional['ReformAIConfig']] = None

    @classmethod
    def load(cls) -> 'ReformAIConfig':
        """
        Resolve the config paths once per process.
        """
        if cls._instance is not None:
            return cls._instance

        config_path = cls.resolve_reformai_config_path()
        cls._instance = cls(
            reformai_config_path=config_path,
            dotenv_path=cls.find_file_in_search_order(ConfigNameEnum.DOTENV.value, config_path),
            llm_config_json_path=cls.find_file_in_search_order(ConfigNameEnum.LLM_CONFIG_JSON.value, config_path),
        )
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the cached instance, so the next load() searches again."""
        cls._instance = None

    @classmethod
    def resolve_reformai_config_path(cls) -> Optional[Path]:
        path_str = os.environ.get("REFORMAI_CONFIG_PATH")
        if not path_str:
            logger.debug("REFORMAI_CONFIG_PATH is not set")
            return None
        path_obj = Path(path_str)
        if not path_obj.is_absolute():
            logger.error(f"REFORMAI_CONFIG_PATH must be an absolute path: {path_obj!r}")
            return None
        if not path_obj.is_dir():
            logger.error(f"REFORMAI_CONFIG_PATH must be a directory: {path_obj!r}")
            return None
        logger.debug(f"Using REFORMAI_CONFIG_PATH: {path_obj!r}")
        return path_obj

    @classmethod
    def find_file_in_search_order(cls, filename: str, config_path: Optional[Path]) -> Optional[Path]:
        candidates = []
        if config_path is not None:
            candidates.append(config_path / filename)
        candidates.append(Path.cwd() / filename)
        candidates.append(PROJECT_ROOT / filename)

        for candidate in candidates:
            if candidate.is_file():
                logger.debug(f"Found {filename!r} at {candidate!r}")
                return candidate

        logger.info(f"{filename!r} not found in any of the search locations (ENV_VAR, CWD, Project Root).")
        return None


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    config = ReformAIConfig.load()
    print(f"config: {config!r}")
