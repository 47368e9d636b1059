"""Data model for generated scripts, citations and the chat transcript."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Scene(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    script: str
    visual_prompt: str = ""

    @field_validator("title", "script", "visual_prompt", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return "" if value is None else value


class ScriptData(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    scenes: List[Scene]


class GroundingChunkWeb(BaseModel):
    uri: str = ""
    title: str = ""


class GroundingChunk(BaseModel):
    web: Optional[GroundingChunkWeb] = None


class ScriptGenerationResult(BaseModel):
    script: ScriptData
    grounding_chunks: List[GroundingChunk] = Field(default_factory=list)


class ChatMessage(BaseModel):
    sender: Literal["user", "bot"]
    text: str
