from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from responses_chat.conversation import DEFAULT_SYSTEM_PREAMBLE
from responses_chat.models import ConnectionConfig, ContextPolicy

API_KEY_ENV_VARS = ("RESPONSES_API_KEY", "OPENAI_API_KEY")


@dataclass
class RuntimeEnv:
    api_key: str
    api_key_env_var: str | None


@dataclass
class AppConfig:
    base_url: str
    model: str
    temperature: float
    system_preamble: str
    keep_last_messages: int
    chunk_size: int
    max_summary_chars: int
    summary_model: str
    summary_temperature: float
    state_path: str
    request_timeout_seconds: float
    log_level: str
    log_consumers: list | None

    def connection(self, env: RuntimeEnv) -> ConnectionConfig:
        return ConnectionConfig(
            base_url=self.base_url,
            api_key=env.api_key,
            model=self.model,
            temperature=self.temperature,
        )

    def context_policy(self) -> ContextPolicy:
        return ContextPolicy(
            keep_last_messages=self.keep_last_messages,
            chunk_size=self.chunk_size,
            max_summary_chars=self.max_summary_chars,
            summary_model=self.summary_model,
            summary_temperature=self.summary_temperature,
        )


def load_json_config(config_path: Path | None = None) -> dict:
    config_path = config_path or Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            return json.load(f)
    return {}


def parse_app_config(config: dict) -> AppConfig:
    defaults = ContextPolicy()
    return AppConfig(
        base_url=str(config.get("BaseUrl", "https://api.proxyapi.ru")).strip(),
        model=str(config.get("Model", "gpt-4.1")).strip(),
        temperature=float(config.get("Temperature", 0.7)),
        system_preamble=str(config.get("SystemPreamble", DEFAULT_SYSTEM_PREAMBLE)),
        keep_last_messages=int(config.get("KeepLastMessages", defaults.keep_last_messages)),
        chunk_size=int(config.get("ChunkSize", defaults.chunk_size)),
        max_summary_chars=int(config.get("MaxSummaryChars", defaults.max_summary_chars)),
        summary_model=str(config.get("SummaryModel", defaults.summary_model)).strip(),
        summary_temperature=float(config.get("SummaryTemperature", defaults.summary_temperature)),
        state_path=str(config.get("StatePath", ".responses_chat/state.json")),
        request_timeout_seconds=float(config.get("RequestTimeoutSeconds", 60)),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env() -> RuntimeEnv:
    for var in API_KEY_ENV_VARS:
        value = os.environ.get(var, "").strip()
        if value:
            return RuntimeEnv(api_key=value, api_key_env_var=var)
    return RuntimeEnv(api_key="", api_key_env_var=None)
