from responses_chat.conversation import Conversation, SendResult
from responses_chat.errors import (
    ChatError,
    EmptyAnswerError,
    ResponsesClientError,
    ResponsesHTTPError,
    ResponsesProtocolError,
    SummarizationError,
    ValidationError,
)
from responses_chat.models import ConnectionConfig, ContextPolicy, Summary, SummaryTotals, Turn, Usage
from responses_chat.responses_client import ResponsesClient, ResponsesProvider

__all__ = [
    "ChatError",
    "ConnectionConfig",
    "ContextPolicy",
    "Conversation",
    "EmptyAnswerError",
    "ResponsesClient",
    "ResponsesClientError",
    "ResponsesHTTPError",
    "ResponsesProtocolError",
    "ResponsesProvider",
    "SendResult",
    "Summary",
    "SummaryTotals",
    "SummarizationError",
    "Turn",
    "Usage",
    "ValidationError",
]
