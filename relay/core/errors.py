# every relay failure knows which HTTP status it maps to,
# the router turns them into {"ok": false, "error": ...} envelopes

from typing import Optional


class RelayError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(RelayError):
    status_code = 400


class BotNotFound(RelayError):
    status_code = 404

    def __init__(self, message: str = "Chatbot not found") -> None:
        super().__init__(message)


class BotNotLinked(RelayError):
    status_code = 400

    def __init__(self, bot_id: str) -> None:
        super().__init__(
            f"Chatbot {bot_id} is not linked to an assistant (openai_assistant_id is missing). "
            "Link an assistant to the chatbot and try again."
        )


class StoreError(RelayError):
    status_code = 500


class UpstreamError(RelayError):
    """Non-success answer (or transport failure, status 0) from the assistant API."""

    status_code = 500

    def __init__(self, path: str, status: int, body: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"Assistant API {path} error: {status} {body}", status_code)
        self.path = path
        self.status = status
        self.body = body


class ClientDisconnected(RelayError):
    status_code = 499

    def __init__(self) -> None:
        super().__init__("Client disconnected")
