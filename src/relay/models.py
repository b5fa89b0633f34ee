"""Request, message and transcript models for the relay."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Service(str, Enum):
    """Backends a request can be routed to."""

    AZURE = "Azure"
    BEDROCK = "Bedrock"


class RelayState(str, Enum):
    """Dispatcher lifecycle; validation happens before a Dispatcher exists."""

    DISPATCHED = "dispatched"
    STREAMING = "streaming"
    CLOSED = "closed"


class Message(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class RelayRequest(BaseModel):
    """A validated inbound relay request.

    Field names follow the JSON wire format (camelCase aliases); Python code
    uses the snake_case attributes.
    """

    model_config = ConfigDict(populate_by_name=True)

    service: Service = Service.AZURE
    deployment: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    system_prompt: str = Field(alias="systemPrompt", min_length=1)
    query_prompt: str = Field(alias="queryPrompt", min_length=1)
    history: list[Message] = Field(default_factory=list)
    callback: Any = None

    @field_validator("params", "history", mode="before")
    @classmethod
    def _null_as_empty(cls, value, info):
        if value is None:
            return {} if info.field_name == "params" else []
        return value

    @field_validator("deployment", mode="before")
    @classmethod
    def _blank_deployment(cls, value):
        # "" means "use the provider default", same as omitting the field
        return value or None


class FinalResponse(BaseModel):
    """Transcript of one relayed exchange, handed to the completion hook."""

    model_config = ConfigDict(populate_by_name=True)

    history: list[Message]
    user_message: str = Field(alias="userMessage")
    assistant_response: str = Field(default="", alias="assistantResponse")
    service: Service | None = None
    deployment: str | None = None
    error: str | None = None
