import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from responses_chat.app_config import load_json_config, parse_app_config, resolve_runtime_env
from responses_chat.bootstrap import bootstrap_runtime
from responses_chat.commands import ChatCommands
from responses_chat.display import history_lines, totals_line, turn_stats_lines
from responses_chat.errors import ChatError

_LINE_PREFIX = "assistant> "
_USER_PROMPT = "you> "


async def main() -> None:
    load_dotenv()

    app = parse_app_config(load_json_config())
    env = resolve_runtime_env()
    if not env.api_key:
        logger.error("RESPONSES_API_KEY (or OPENAI_API_KEY) environment variable is required.")
        sys.exit(1)

    runtime = bootstrap_runtime(app, env)
    conversation = runtime.conversation

    commands = ChatCommands(conversation, line_prefix=_LINE_PREFIX)

    policy = conversation.context_policy
    print("responses-chat (type 'exit' to quit, '/help' for commands)")
    print(f"Endpoint: {app.base_url} | model: {app.model} | temperature: {app.temperature}")
    print(
        f"Context: last {policy.keep_last_messages} messages verbatim, "
        f"summaries every {policy.chunk_size} older messages via {policy.summary_model}"
    )
    print(f"State: {runtime.store.path} ({len(conversation.turns)} messages restored)")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    if conversation.turns:
        print()
        for line in history_lines(conversation.turns):
            print(line)
    bar = totals_line(conversation.totals())
    if bar:
        print(bar)
    print()

    try:
        while True:
            try:
                user_input = input(_USER_PROMPT)
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()
            if trimmed in ("exit", "quit"):
                break
            if not trimmed:
                continue

            try:
                if await commands.router.try_handle(trimmed):
                    continue
                result = await conversation.send(trimmed)
            except ChatError as ex:
                logger.error(f"Request failed: {ex}")
                print(f"{_LINE_PREFIX}[error] {ex}\n")
                continue
            except Exception as ex:
                logger.exception(f"Unhandled error: {ex}")
                print(f"{_LINE_PREFIX}[error] {ex}\n")
                continue

            user_turn, assistant_turn = conversation.turns[-2:]
            for line in turn_stats_lines(user_turn):
                print(f"  {line}")
            print(f"{_LINE_PREFIX}{result.answer}")
            for line in turn_stats_lines(assistant_turn):
                print(f"  {line}")
            bar = totals_line(conversation.totals())
            if bar:
                print(f"  {bar}")
            print()
    finally:
        await runtime.client.aclose()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
