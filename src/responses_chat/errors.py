from __future__ import annotations


class ChatError(Exception):
    """Base class for every failure surfaced by responses_chat."""


class ValidationError(ChatError):
    """Input was rejected before any request was made."""


class ResponsesClientError(ChatError):
    """The responses endpoint could not be reached or answered unusably."""


class ResponsesHTTPError(ResponsesClientError):
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body}")


class ResponsesProtocolError(ResponsesClientError):
    """The endpoint answered 2xx but the body was not a JSON object."""


class EmptyAnswerError(ChatError):
    """The reply contained no assistant output_text."""


class SummarizationError(ChatError):
    def __init__(self, from_index: int, to_index: int, reason: str):
        self.from_index = from_index
        self.to_index = to_index
        super().__init__(f"Summarization of messages #{from_index}..#{to_index} failed: {reason}")
