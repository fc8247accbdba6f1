from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

Role = Literal["system", "user", "assistant"]

OutcomeKind = Literal["reply", "validation", "busy", "transport", "upstream", "no_content"]


class Product(BaseModel):
    """Catalog entry. Ids are canonicalized to strings on the way in."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str
    brand: str
    category: str
    description: str
    image: str

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value)) if float(value).is_integer() else str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    def routine_fields(self) -> dict[str, str]:
        return {
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "description": self.description,
        }


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ChatOutcome(BaseModel):
    """What a chat or routine request produced, ready for the UI to render.

    `message` is the assistant reply on success and a human-readable
    diagnostic otherwise.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    kind: OutcomeKind
    message: str
    status_code: Optional[int] = None


class _CompletionMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Optional[str] = None


class CompletionChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: Optional[_CompletionMessage] = None


def extract_reply(data: Any) -> Optional[str]:
    """Pull `choices[0].message.content` out of a provider response body.

    Only the first choice is validated; later choices are ignored.
    """
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    try:
        first = CompletionChoice.model_validate(choices[0])
    except ValidationError:
        return None
    if first.message is None or not first.message.content:
        return None
    return first.message.content
