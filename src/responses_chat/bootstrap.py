from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from responses_chat.app_config import AppConfig, RuntimeEnv
from responses_chat.conversation import Conversation
from responses_chat.logging_config import setup_logging
from responses_chat.responses_client import ResponsesClient
from responses_chat.state_store import StateStore


@dataclass
class AppRuntime:
    conversation: Conversation
    client: ResponsesClient
    store: StateStore
    log_descriptions: list[str]


def bootstrap_runtime(app: AppConfig, env: RuntimeEnv) -> AppRuntime:
    state_path = Path(app.state_path)
    if not state_path.is_absolute():
        state_path = Path.cwd() / state_path
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers, state_dir=state_path.parent)

    client = ResponsesClient(timeout=app.request_timeout_seconds)
    conversation = Conversation(
        client,
        connection=app.connection(env),
        context_policy=app.context_policy(),
        system_preamble=app.system_preamble,
    )

    store = StateStore(state_path)

    saved = store.load()
    if saved is not None:
        conversation.import_state(saved)
        logger.info(f"Restored conversation from {state_path}")

    # Configured values win over the ones restored from disk.
    conversation.set_config(
        base_url=app.base_url,
        api_key=env.api_key,
        model=app.model,
        temperature=app.temperature,
    )
    conversation.subscribe(store.save)

    return AppRuntime(
        conversation=conversation,
        client=client,
        store=store,
        log_descriptions=log_descriptions,
    )
