"""
Load ReformAI's .env file, containing secrets such as GEMINI_API_KEY.

Variables already present in the process environment win over the ones in the .env file.

PROMPT> python -m reformai.utils.reformai_dotenv
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging
import os
from dotenv import dotenv_values
from reformai.utils.reformai_config import ReformAIConfig

logger = logging.getLogger(__name__)


@dataclass
class ReformAIDotEnv:
    dotenv_path: Optional[Path]
    dotenv_dict: dict[str, str]

    @classmethod
    def load(cls) -> 'ReformAIDotEnv':
        config = ReformAIConfig.load()
        file_dict: dict[str, str] = {}
        if config.dotenv_path is not None:
            file_dict = {key: value for key, value in dotenv_values(dotenv_path=config.dotenv_path).items() if value is not None}
            logger.debug(f"Loaded {len(file_dict)} variables from {config.dotenv_path}")
        else:
            logger.debug("No .env file found, using the process environment only")
        return cls(
            dotenv_path=config.dotenv_path,
            dotenv_dict={**file_dict, **os.environ},
        )

    def get(self, key: str) -> Optional[str]:
        return self.dotenv_dict.get(key)

    def __repr__(self):
        return f"ReformAIDotEnv(dotenv_path={self.dotenv_path!r}, count={len(self.dotenv_dict)})"


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    print(ReformAIDotEnv.load())
