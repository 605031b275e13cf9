"""Health check endpoint handler."""

import logging

from ...storage.knowledge_store import KnowledgeBase
from ..config import APIConfig
from ..models.health import HealthStatus

logger = logging.getLogger(__name__)


def check_health(config: APIConfig, knowledge_base: KnowledgeBase) -> HealthStatus:
    """Report corpus size and the active provider.

    Args:
        config: API configuration
        knowledge_base: Loaded corpus

    Returns:
        HealthStatus
    """
    stats = knowledge_base.stats
    status = HealthStatus(
        entries=stats.total_entries,
        types=dict(stats.types),
        provider=config.get_provider_name(),
        model=config.get_effective_model(),
    )
    logger.debug(f"Health check: {status.entries} entries, provider={status.provider}")
    return status
