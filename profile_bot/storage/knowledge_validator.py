"""Knowledge base file validation.

Checks a JSONL corpus against the authoring schema and collects errors,
warnings and summary statistics. Used by ``profile-bot validate``.
"""

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

VALID_TYPES = ("fact", "narrative", "qa_pair", "technical", "fit_assessment")
VALID_CONFIDENCE = ("verified", "inferred", "approximate")
VALID_FIT_TYPES = ("good_fit", "not_ideal", "red_flag")
ID_PATTERN = re.compile(r"^rag-\d{4}-\d{2}-\d{2}-\d{3}$")

SHORT_CONTENT_CHARS = 20
SHORT_NARRATIVE_CHARS = 100


@dataclass
class LineIssue:
    line_number: int
    entry_id: str
    level: str  # "ERROR" or "WARNING"
    message: str

    def __str__(self) -> str:
        return f"Line {self.line_number} ({self.entry_id}): {self.level} - {self.message}"


@dataclass
class ValidationReport:
    """Result of validating one knowledge file."""

    path: Path
    total_lines: int = 0
    unique_ids: int = 0
    issues: list[LineIssue] = field(default_factory=list)
    type_counts: Counter = field(default_factory=Counter)
    topic_counts: Counter = field(default_factory=Counter)
    confidence_counts: Counter = field(default_factory=Counter)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.level == "ERROR")

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.level == "WARNING")

    @property
    def is_valid(self) -> bool:
        return self.error_count == 0

    @property
    def coverage_note(self) -> str:
        if self.total_lines < 30:
            return "Below minimum viable (30+ entries recommended)"
        if self.total_lines < 80:
            return "Basic coverage - interview sessions can deepen this significantly"
        if self.total_lines < 150:
            return "Good coverage - consider targeted gap-filling"
        return "Comprehensive coverage"


def _is_snake_case(value: str) -> bool:
    return value == value.lower() and " " not in value


def validate_entry(entry: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Validate a single decoded entry.

    Returns:
        (errors, warnings)
    """
    errors: list[str] = []
    warnings: list[str] = []

    entry_id = entry.get("id")
    if not entry_id:
        errors.append("Missing required field: id")
    elif not ID_PATTERN.match(str(entry_id)):
        errors.append(f'Invalid id format: "{entry_id}" (expected: rag-YYYY-MM-DD-###)')

    entry_type = entry.get("type")
    if not entry_type:
        errors.append("Missing required field: type")
    elif entry_type not in VALID_TYPES:
        errors.append(f'Invalid type: "{entry_type}" (expected: {", ".join(VALID_TYPES)})')

    topic = entry.get("topic")
    if not topic:
        errors.append("Missing required field: topic")
    elif not _is_snake_case(str(topic)):
        warnings.append(f'Topic "{topic}" should be snake_case')

    confidence = entry.get("confidence")
    if not confidence:
        errors.append("Missing required field: confidence")
    elif confidence not in VALID_CONFIDENCE:
        errors.append(
            f'Invalid confidence: "{confidence}" (expected: {", ".join(VALID_CONFIDENCE)})'
        )

    if not entry.get("source"):
        errors.append("Missing required field: source")

    tags = entry.get("tags")
    if tags is None:
        errors.append("Missing required field: tags")
    elif not isinstance(tags, list):
        errors.append("tags must be an array")
    elif not tags:
        errors.append("tags array must not be empty")
    else:
        if confidence and confidence not in tags:
            warnings.append(f'tags should include confidence level "{confidence}"')
        for tag in tags:
            if not _is_snake_case(str(tag)):
                warnings.append(f'Tag "{tag}" should be snake_case')

    if entry_type in ("fact", "narrative", "technical"):
        if not str(entry.get("content") or "").strip():
            errors.append(f"Missing required field for {entry_type}: content")

    if entry_type in ("narrative", "technical") and not entry.get("title"):
        warnings.append(
            f"{entry_type} entries should have a title field (used in retrieval scoring)"
        )

    if entry_type == "qa_pair":
        if not str(entry.get("question") or "").strip():
            errors.append("Missing required field for qa_pair: question")
        if not str(entry.get("answer") or "").strip():
            errors.append("Missing required field for qa_pair: answer")

    if entry_type == "fit_assessment":
        fit_type = entry.get("fit_type")
        if not fit_type:
            errors.append("Missing required field for fit_assessment: fit_type")
        elif fit_type not in VALID_FIT_TYPES:
            errors.append(
                f'Invalid fit_type: "{fit_type}" (expected: {", ".join(VALID_FIT_TYPES)})'
            )
        if not entry.get("criteria"):
            errors.append("Missing required field for fit_assessment: criteria")
        if not entry.get("explanation"):
            errors.append("Missing required field for fit_assessment: explanation")

    content = str(entry.get("content") or entry.get("answer") or "")
    if 0 < len(content) < SHORT_CONTENT_CHARS:
        warnings.append("Content is very short (< 20 chars) - may not be useful for retrieval")
    if entry_type == "narrative" and len(content) < SHORT_NARRATIVE_CHARS:
        warnings.append("Narrative content is short (< 100 chars) - narratives should tell a story")

    return errors, warnings


def validate_knowledge_file(path: str | Path, strict: bool = False) -> ValidationReport:
    """Validate every line of a JSONL knowledge file.

    Args:
        path: Knowledge file to check
        strict: Report warnings as errors

    Returns:
        ValidationReport

    Raises:
        FileNotFoundError: If the file does not exist
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    lines = file_path.read_text(encoding="utf-8").strip().splitlines()
    report = ValidationReport(path=file_path, total_lines=len(lines))
    seen_ids: set[str] = set()
    duplicates: list[tuple[str, int]] = []

    for line_number, line in enumerate(lines, start=1):
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as e:
            report.issues.append(
                LineIssue(line_number, "no id", "ERROR", f"PARSE ERROR - Invalid JSON: {e}")
            )
            continue

        if not isinstance(entry, dict):
            report.issues.append(
                LineIssue(line_number, "no id", "ERROR", "Entry must be a JSON object")
            )
            continue

        raw_id = entry.get("id")
        entry_id = str(raw_id) if raw_id else None
        if entry_id:
            if entry_id in seen_ids:
                duplicates.append((entry_id, line_number))
            seen_ids.add(entry_id)

        if entry.get("type"):
            report.type_counts[str(entry["type"])] += 1
        if entry.get("topic"):
            report.topic_counts[str(entry["topic"])] += 1
        if entry.get("confidence"):
            report.confidence_counts[str(entry["confidence"])] += 1

        errors, warnings = validate_entry(entry)
        label = entry_id or "no id"
        report.issues.extend(LineIssue(line_number, label, "ERROR", err) for err in errors)
        warning_level = "ERROR" if strict else "WARNING"
        report.issues.extend(LineIssue(line_number, label, warning_level, w) for w in warnings)

    for entry_id, line_number in duplicates:
        report.issues.append(
            LineIssue(line_number, entry_id, "ERROR", f'Duplicate id: "{entry_id}"')
        )

    report.unique_ids = len(seen_ids)
    logger.debug(
        f"Validated {file_path}: {report.error_count} errors, {report.warning_count} warnings"
    )
    return report
