"""
Persisted user creations and chat transcript entries.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from miniapp.utils.datetime_utils import to_iso_string, utc_now


class CreationType(str, Enum):
    APP = "app"
    ILLUSTRATION = "illustration"
    ANSWER = "answer"
    REFERENCE = "reference"


class Creation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    title: str
    description: str = ""
    type: CreationType = CreationType.APP
    content: str = ""
    thumbnail_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("thumbnailURL", "thumbnailUrl", "thumbnail_url"),
        serialization_alias="thumbnailURL",
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, v: datetime) -> str:
        return to_iso_string(v)


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)

    @field_serializer("timestamp")
    def serialize_timestamp(self, v: datetime) -> str:
        return to_iso_string(v)
