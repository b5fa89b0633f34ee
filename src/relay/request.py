"""Boundary validation: raw request body -> RelayRequest, and message assembly."""

import json

from pydantic import ValidationError

from src.relay.models import Message, RelayRequest, Service


class RequestError(ValueError):
    """Inbound request rejected before any provider call."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def parse_request(body: bytes | str | None) -> RelayRequest:
    """Validate a raw JSON body and return a typed RelayRequest.

    Checks run in a fixed order so a given malformed body always produces
    the same error message.
    """
    if not body:
        raise RequestError("No request body detected")

    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise RequestError("Request body is not valid JSON")

    if not isinstance(data, dict):
        raise RequestError("Request body must be a JSON object")

    if not data.get("systemPrompt"):
        raise RequestError("System Prompt (systemPrompt) missing")
    if not data.get("queryPrompt"):
        raise RequestError("User Query (queryPrompt) missing")

    service = data.get("service")
    if service is None:
        data.pop("service", None)
    elif service not in [s.value for s in Service]:
        supported = ", ".join(s.value for s in Service)
        raise RequestError(f"Unsupported service '{service}'; expected one of: {supported}")

    try:
        return RelayRequest.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "body"
        raise RequestError(f"Invalid request: {location}: {first['msg']}")


def build_messages(system_prompt: str, history: list[Message], query_prompt: str) -> list[Message]:
    """Assemble [system?, *history, user] in send order."""
    messages = []
    if system_prompt:
        messages.append(Message(role="system", content=system_prompt))
    messages.extend(history)
    if query_prompt:
        messages.append(Message(role="user", content=query_prompt))

    if not messages:
        raise RequestError("No valid messages provided.")
    return messages
