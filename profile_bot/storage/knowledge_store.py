# profile_bot/storage/knowledge_store.py
import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from profile_bot.core.errors import KnowledgeBaseError
from profile_bot.models.knowledge import KnowledgeEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorpusStats:
    total_entries: int = 0
    types: Dict[str, int] = field(default_factory=dict)
    topics: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class KnowledgeBase:
    """Immutable, process-lifetime corpus shared by every request."""

    entries: Tuple[KnowledgeEntry, ...] = ()
    stats: CorpusStats = field(default_factory=CorpusStats)

    @classmethod
    def from_entries(cls, entries: Iterable[KnowledgeEntry]) -> "KnowledgeBase":
        entries = tuple(entries)
        return cls(entries=entries, stats=compute_stats(entries))

    def __len__(self) -> int:
        return len(self.entries)


def compute_stats(entries: Tuple[KnowledgeEntry, ...]) -> CorpusStats:
    types = Counter(entry.kind.value for entry in entries)
    topics = Counter(entry.topic for entry in entries)
    return CorpusStats(
        total_entries=len(entries),
        types=dict(types),
        topics=dict(topics),
    )


def load_knowledge_base(path: Union[str, Path]) -> KnowledgeBase:
    """Load a JSONL knowledge corpus.

    Malformed lines and entries that fail the schema are logged and skipped;
    a missing or unreadable file raises KnowledgeBaseError.
    """
    jsonl_path = Path(path)
    if not jsonl_path.exists():
        raise KnowledgeBaseError(f"Knowledge base not found: {jsonl_path}")

    try:
        lines = jsonl_path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise KnowledgeBaseError(f"Failed to read knowledge base {jsonl_path}: {e}") from e

    entries = []
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON on line {line_number}, skipping: {e}")
            continue

        try:
            entries.append(KnowledgeEntry.model_validate(data))
        except PydanticValidationError as e:
            entry_id = data.get("id", "no id") if isinstance(data, dict) else "no id"
            logger.warning(
                f"Invalid entry on line {line_number} ({entry_id}), "
                f"skipping: {e.error_count()} validation error(s)"
            )

    knowledge_base = KnowledgeBase.from_entries(entries)
    logger.info(
        f"Loaded {len(knowledge_base)} knowledge entries from {jsonl_path} "
        f"(types: {knowledge_base.stats.types})"
    )
    return knowledge_base
