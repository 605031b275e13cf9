"""Pytest configuration and fixtures for test suite.

Provides:
- Custom markers
- A small fictional knowledge corpus shared by unit and integration tests
"""

import pytest

from profile_bot.models.knowledge import KnowledgeEntry
from profile_bot.storage.knowledge_store import KnowledgeBase

SAMPLE_ENTRIES = [
    {
        "id": "test-001",
        "type": "fact",
        "topic": "career_history",
        "content": "Jane worked at Acme Corp for 8 years as a software engineer specializing in Python and machine learning.",
        "confidence": "verified",
        "tags": ["career", "acme", "python", "machine-learning", "verified"],
    },
    {
        "id": "test-002",
        "type": "qa_pair",
        "topic": "skills",
        "question": "What programming languages does Jane know?",
        "answer": "Jane is proficient in Python, JavaScript, TypeScript, and Go. She has experience with Rust and C++ as well.",
        "confidence": "verified",
        "tags": ["programming", "languages", "skills", "verified"],
    },
    {
        "id": "test-003",
        "type": "narrative",
        "topic": "about",
        "title": "Professional Overview",
        "content": "Jane is a senior software engineer with 12 years of experience building scalable web applications and data pipelines.",
        "confidence": "verified",
        "tags": ["overview", "experience", "verified"],
    },
    {
        "id": "test-004",
        "type": "technical",
        "topic": "projects",
        "title": "DataFlow Pipeline System",
        "content": "Jane designed and built a real-time data pipeline processing 2 million events per day using Kafka, Spark, and PostgreSQL.",
        "confidence": "verified",
        "tags": ["dataflow", "pipeline", "kafka", "spark", "verified"],
    },
    {
        "id": "test-005",
        "type": "fact",
        "topic": "education",
        "content": "Jane holds a Masters degree in Computer Science from Stanford University, graduating in 2012.",
        "confidence": "verified",
        "tags": ["education", "stanford", "computer-science", "verified"],
    },
    {
        "id": "test-006",
        "type": "qa_pair",
        "topic": "career_history",
        "question": "What was Jane's role at BigTech Inc?",
        "answer": "Jane was a Staff Engineer at BigTech Inc where she led a team of 15 engineers building the recommendation engine.",
        "confidence": "verified",
        "tags": ["bigtech", "staff-engineer", "leadership", "verified"],
    },
    {
        "id": "test-007",
        "type": "narrative",
        "topic": "about",
        "title": "Career Philosophy",
        "content": "Jane believes in building software that solves real problems. She focuses on developer experience and maintainable code over clever abstractions.",
        "confidence": "verified",
        "tags": ["philosophy", "values", "verified"],
    },
    {
        "id": "test-008",
        "type": "fact",
        "topic": "skills",
        "content": "Jane is certified in AWS Solutions Architect and Google Cloud Professional Data Engineer.",
        "confidence": "inferred",
        "tags": ["cloud", "aws", "gcp", "certifications", "inferred"],
    },
]


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


@pytest.fixture
def knowledge_entries():
    """Fictional corpus about one person."""
    return [KnowledgeEntry.model_validate(data) for data in SAMPLE_ENTRIES]


@pytest.fixture
def knowledge_base(knowledge_entries):
    return KnowledgeBase.from_entries(knowledge_entries)


class FakeClock:
    """Manually advanced unix clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
