# Copyright (c) Microsoft. All rights reserved.

"""
Wire models for the chat proxy HTTP API.

Requests accept camelCase, snake_case and the PascalCase keys sent by the
legacy browser client. Responses are always serialized in camelCase.
"""

from datetime import datetime, timezone

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Serialize to a JSON-ready dict, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ChatRequest(_WireModel):
    """Inbound chat message."""

    message: str = Field(
        default="",
        validation_alias=AliasChoices("message", "Message"),
    )
    thread_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("threadId", "ThreadId", "thread_id"),
    )

    @field_validator("message", mode="before")
    @classmethod
    def _null_message_is_empty(cls, value):
        return "" if value is None else value


class ChatResponse(_WireModel):
    """
    Outbound chat message.

    Either ``message`` carries the agent's reply or ``error`` describes why
    there is none; a response with neither is rejected.
    """

    thread_id: str | None = None
    message: str = ""
    agent_name: str = ""
    error: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _reply_or_error(self) -> "ChatResponse":
        if not self.message and not self.error:
            raise ValueError("A chat response needs either a reply message or an error")
        return self


class CreateThreadResponse(_WireModel):
    thread_id: str
