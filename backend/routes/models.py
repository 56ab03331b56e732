"""Pydantic request models for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PromptBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    story_id: str = Field("", alias="storyId")
    text: str = ""

    @field_validator("story_id", "text", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> str:
        # null, false and 0 count as missing; other scalars become their text
        if not value:
            return ""
        if isinstance(value, (dict, list)):
            return ""
        return str(value)


class UploadBody(BaseModel):
    data_url: str = Field("", alias="dataUrl")
    filename: str = ""

    model_config = ConfigDict(populate_by_name=True)
