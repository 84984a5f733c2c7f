import asyncio
import shutil
import unittest
from pathlib import Path
from uuid import uuid4

from loguru import logger

from responses_chat.app_config import RuntimeEnv, parse_app_config
from responses_chat.bootstrap import bootstrap_runtime
from responses_chat.state_store import StateStore

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class BootstrapTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"bootstrap-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)
        self._state_path = self._tmp_dir / "state.json"

    def tearDown(self) -> None:
        logger.remove()
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def _app(self, **overrides):
        config = {"StatePath": str(self._state_path), "LogConsumers": [], "Model": "gpt-4.1"}
        config.update(overrides)
        return parse_app_config(config)

    def test_restores_saved_history_and_applies_configured_connection(self) -> None:
        StateStore(self._state_path).save({
            "version": 4,
            "config": {"base_url": "https://old.test", "api_key": None, "model": "gpt-3.5-turbo", "temperature": 1.0},
            "context_policy": {"chunk_size": 6},
            "history": [{"role": "user", "text": "Hi"}, {"role": "assistant", "text": "Hello"}],
        })

        runtime = bootstrap_runtime(self._app(BaseUrl="https://new.test"), RuntimeEnv(api_key="k", api_key_env_var=None))
        try:
            conversation = runtime.conversation
            self.assertEqual(["Hi", "Hello"], [t.text for t in conversation.turns])
            self.assertEqual("https://new.test", conversation.connection.base_url)
            self.assertEqual("gpt-4.1", conversation.connection.model)
            self.assertEqual("k", conversation.connection.api_key)
            self.assertEqual(6, conversation.context_policy.chunk_size)
        finally:
            asyncio.run(runtime.client.aclose())

    def test_changes_are_persisted(self) -> None:
        runtime = bootstrap_runtime(self._app(), RuntimeEnv(api_key="k", api_key_env_var=None))
        try:
            runtime.conversation.set_context_policy({"keep_last_messages": 3})
            saved = StateStore(self._state_path).load()
            self.assertEqual(3, saved["context_policy"]["keep_last_messages"])
            self.assertIsNone(saved["config"]["api_key"])

            runtime.conversation.import_state({"history": [{"role": "user", "text": "Hi"}]})
            runtime.conversation.reset()
            self.assertEqual([], StateStore(self._state_path).load()["history"])
        finally:
            asyncio.run(runtime.client.aclose())


if __name__ == "__main__":
    unittest.main()
