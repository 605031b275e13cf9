"""Chat endpoint response models."""

from pydantic import BaseModel, ConfigDict


class ChatMetadata(BaseModel):
    """Timing and retrieval details attached to each reply."""

    model_config = ConfigDict(extra="forbid")

    retrievalTime: int
    aiGenerationTime: int | None = None
    totalTime: int | None = None
    entriesFound: int
    topics: list[str] | None = None


class ChatResponse(BaseModel):
    """Successful chat reply."""

    message: str
    suggestions: list[str]
    metadata: ChatMetadata
