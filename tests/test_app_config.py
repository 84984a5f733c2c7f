import os
import unittest
from unittest.mock import patch

from responses_chat.app_config import parse_app_config, resolve_runtime_env
from responses_chat.conversation import DEFAULT_SYSTEM_PREAMBLE
from responses_chat.models import ContextPolicy


class AppConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        app = parse_app_config({})
        self.assertEqual("gpt-4.1", app.model)
        self.assertEqual(DEFAULT_SYSTEM_PREAMBLE, app.system_preamble)
        self.assertEqual(ContextPolicy(), app.context_policy())
        self.assertEqual(".responses_chat/state.json", app.state_path)

    def test_overrides(self) -> None:
        app = parse_app_config({
            "BaseUrl": " https://gw.test ",
            "Model": "gpt-5.2",
            "Temperature": "0.3",
            "KeepLastMessages": 6,
            "ChunkSize": "4",
            "SummaryModel": "gpt-4.1-mini",
        })
        self.assertEqual("https://gw.test", app.base_url)
        self.assertEqual(0.3, app.temperature)
        policy = app.context_policy()
        self.assertEqual(6, policy.keep_last_messages)
        self.assertEqual(4, policy.chunk_size)
        self.assertEqual("gpt-4.1-mini", policy.summary_model)

    def test_connection_takes_key_from_env(self) -> None:
        app = parse_app_config({"Model": "gpt-5.2"})
        with patch.dict(os.environ, {"RESPONSES_API_KEY": "", "OPENAI_API_KEY": "sk-1"}):
            env = resolve_runtime_env()
        self.assertEqual("OPENAI_API_KEY", env.api_key_env_var)
        connection = app.connection(env)
        self.assertEqual("sk-1", connection.api_key)
        self.assertEqual("gpt-5.2", connection.model)

    def test_preferred_env_var_wins(self) -> None:
        with patch.dict(os.environ, {"RESPONSES_API_KEY": "rk", "OPENAI_API_KEY": "sk"}):
            self.assertEqual("rk", resolve_runtime_env().api_key)

    def test_no_key(self) -> None:
        with patch.dict(os.environ, {"RESPONSES_API_KEY": "", "OPENAI_API_KEY": ""}):
            env = resolve_runtime_env()
        self.assertEqual("", env.api_key)
        self.assertIsNone(env.api_key_env_var)


if __name__ == "__main__":
    unittest.main()
