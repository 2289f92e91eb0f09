import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock
from reformai.utils.reformai_config import ReformAIConfig
from reformai.utils.reformai_llmconfig import ReformAILLMConfig


class TestReformAILLMConfig(unittest.TestCase):
    def setUp(self):
        ReformAIConfig.reset()

    def tearDown(self):
        ReformAIConfig.reset()

    def test_substitute_env_vars(self):
        # Arrange
        config = {"gemini": {"arguments": {"api_key": "${GEMINI_API_KEY}", "model": "gemini", "extra": ["${MISSING}"]}}}

        # Act
        result = ReformAILLMConfig.substitute_env_vars(config, {"GEMINI_API_KEY": "secret"})

        # Assert
        self.assertEqual(result["gemini"]["arguments"]["api_key"], "secret")
        self.assertEqual(result["gemini"]["arguments"]["model"], "gemini")
        self.assertEqual(result["gemini"]["arguments"]["extra"], ["${MISSING}"])

    def test_load_from_config_dir(self):
        with tempfile.TemporaryDirectory() as tmp:
            # Arrange
            Path(tmp, "llm_config.json").write_text(json.dumps({
                "m1": {"class": "OpenAI", "priority": 1, "arguments": {"api_key": "${TEST_REFORMAI_KEY}"}}
            }), encoding="utf-8")
            Path(tmp, ".env").write_text("TEST_REFORMAI_KEY=from-dotenv\n", encoding="utf-8")
            env = {"REFORMAI_CONFIG_PATH": tmp}

            # Act
            with mock.patch.dict(os.environ, env, clear=False):
                os.environ.pop("REFORMAI_LLM_CONFIG_JSON", None)
                os.environ.pop("TEST_REFORMAI_KEY", None)
                config = ReformAILLMConfig.load()

            # Assert
            self.assertEqual(config.llm_config_dict["m1"]["arguments"]["api_key"], "from-dotenv")

    def test_env_override(self):
        override = json.dumps({"m2": {"class": "Ollama", "arguments": {"model": "llama3.1"}}})
        with mock.patch.dict(os.environ, {"REFORMAI_LLM_CONFIG_JSON": override}):
            config = ReformAILLMConfig.load()
        self.assertEqual(list(config.llm_config_dict.keys()), ["m2"])


if __name__ == '__main__':
    unittest.main()
