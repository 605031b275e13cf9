"""Keyword-based retrieval over the knowledge corpus.

Scores entries by keyword matches across content, topic, title, tags and,
for question/answer entries, the stored question. Matching is plain substring
containment, so partial-word hits (e.g. "art" in "party") also count.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Sequence

from profile_bot.models.knowledge import EntryKind, KnowledgeEntry

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for",
        "from", "has", "he", "she", "in", "is", "it", "its", "of", "on",
        "that", "the", "to", "was", "will", "with", "what", "when",
        "where", "who", "how", "does", "did", "can", "could", "would",
        "should", "about", "me", "tell", "you", "your", "my", "i",
        "do", "have", "been", "their", "they", "this", "which", "some",
    }
)

MIN_KEYWORD_LENGTH = 3
DEFAULT_TOP_N = 5

FALLBACK_TOPIC = "about"

CONTENT_WEIGHT = 3
TOPIC_WEIGHT = 2
TITLE_WEIGHT = 2
TAG_WEIGHT = 1
QUESTION_WEIGHT = 5
VERIFIED_BONUS = 1

ENTRY_DIVIDER = "\n---\n\n"

_PUNCTUATION = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class ScoredCandidate:
    entry: KnowledgeEntry
    score: int


def extract_keywords(question: str) -> List[str]:
    """Extract search tokens from a visitor question.

    Lowercases, turns punctuation into whitespace and drops short tokens and
    stop words. Order and duplicates are preserved.
    """
    cleaned = _PUNCTUATION.sub(" ", question.lower())
    return [
        word
        for word in cleaned.split()
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS
    ]


def score_entry(entry: KnowledgeEntry, keywords: Sequence[str]) -> int:
    """Compute the relevance score of one entry for the given keywords."""
    score = 0

    content = entry.primary_text.lower()
    topic = entry.topic.lower()
    title = (entry.title or "").lower()
    tags = [tag.lower() for tag in entry.tags]

    for keyword in keywords:
        if keyword in content:
            score += CONTENT_WEIGHT
        if keyword in topic:
            score += TOPIC_WEIGHT
        if keyword in title:
            score += TITLE_WEIGHT
        if any(keyword in tag for tag in tags):
            score += TAG_WEIGHT

    # An entry written to answer this phrasing should beat generic content hits
    if entry.kind == EntryKind.QA_PAIR and entry.question:
        question = entry.question.lower()
        for keyword in keywords:
            if keyword in question:
                score += QUESTION_WEIGHT

    # Applied once per entry, whether or not anything matched
    if entry.is_verified:
        score += VERIFIED_BONUS

    return score


def score_entries(
    keywords: Sequence[str], corpus: Sequence[KnowledgeEntry]
) -> List[ScoredCandidate]:
    """Score every entry, drop zero scores, sort by descending score.

    Ties keep corpus order.
    """
    candidates = [ScoredCandidate(entry, score_entry(entry, keywords)) for entry in corpus]
    candidates = [candidate for candidate in candidates if candidate.score > 0]
    candidates.sort(key=lambda candidate: candidate.score, reverse=True)
    return candidates


def rank(
    question: str,
    corpus: Sequence[KnowledgeEntry],
    top_n: int = DEFAULT_TOP_N,
) -> List[KnowledgeEntry]:
    """Return up to ``top_n`` entries most relevant to ``question``.

    Args:
        question: Visitor question text
        corpus: Knowledge entries to search
        top_n: Maximum number of entries to return

    Returns:
        Entries ordered by descending relevance. Questions with no usable
        keywords fall back to the general "about" narratives.
    """
    keywords = extract_keywords(question)

    if not keywords:
        overview = [
            entry
            for entry in corpus
            if entry.kind == EntryKind.NARRATIVE and entry.topic == FALLBACK_TOPIC
        ]
        logger.debug(f"No keywords in question, returning {len(overview[:top_n])} overview entries")
        return overview[:top_n]

    candidates = score_entries(keywords, corpus)
    logger.debug(
        f"Keywords {keywords} matched {len(candidates)} entries "
        f"(top score: {candidates[0].score if candidates else 0})"
    )
    return [candidate.entry for candidate in candidates[:top_n]]


def _format_entry(index: int, entry: KnowledgeEntry) -> str:
    lines = [
        f"[Entry {index}]",
        f"Type: {entry.kind.value}",
        f"Topic: {entry.topic}",
    ]

    if entry.title:
        lines.append(f"Title: {entry.title}")

    if entry.kind == EntryKind.QA_PAIR:
        lines.append(f"Question: {entry.question or ''}")
        lines.append(f"Answer: {entry.answer or ''}")
    elif entry.kind == EntryKind.FIT_ASSESSMENT:
        criteria = entry.criteria
        if isinstance(criteria, tuple):
            criteria = "; ".join(criteria)
        lines.append(f"Fit: {entry.fit_type or ''}")
        lines.append(f"Criteria: {criteria or ''}")
        lines.append(f"Explanation: {entry.explanation or ''}")
    else:
        lines.append(f"Content: {entry.content or ''}")

    lines.append(f"Confidence: {entry.confidence.value}")
    lines.append(f"Tags: {', '.join(entry.tags)}")

    return "\n".join(lines) + "\n"


def format_entries_for_context(entries: Sequence[KnowledgeEntry]) -> str:
    """Serialize ranked entries into the text block injected into the prompt."""
    return ENTRY_DIVIDER.join(
        _format_entry(index, entry) for index, entry in enumerate(entries, start=1)
    )
