# profile_bot/models/knowledge.py
from enum import Enum
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class EntryKind(str, Enum):
    FACT = "fact"
    NARRATIVE = "narrative"
    QA_PAIR = "qa_pair"
    TECHNICAL = "technical"
    FIT_ASSESSMENT = "fit_assessment"


class Confidence(str, Enum):
    VERIFIED = "verified"
    INFERRED = "inferred"
    APPROXIMATE = "approximate"


class KnowledgeEntry(BaseModel):
    """A single self-contained fact unit from the knowledge corpus.

    Which content fields are populated depends on ``kind``: free text
    (``content``), a question/answer pair, a title + content pair, or a fit
    classification with criteria and explanation.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        use_enum_values=False,
        extra="ignore",
    )

    id: str
    kind: EntryKind = Field(alias="type")
    topic: str
    confidence: Confidence
    tags: Tuple[str, ...] = ()
    source: Optional[str] = None

    content: Optional[str] = None
    title: Optional[str] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    fit_type: Optional[str] = None
    criteria: Union[str, Tuple[str, ...], None] = None
    explanation: Optional[str] = None

    @property
    def primary_text(self) -> str:
        """Main body used for scoring: content, else answer, else explanation."""
        return self.content or self.answer or self.explanation or ""

    @property
    def is_verified(self) -> bool:
        return self.confidence == Confidence.VERIFIED
