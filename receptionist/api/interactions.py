"""Interaction log API endpoints."""
import logging

from fastapi import APIRouter, Depends, Query

from receptionist.core.dependencies import get_interaction_logger
from receptionist.services.persistence.interactions import InteractionLogger

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/api/interactions/recent")
async def get_recent_interactions(
    limit: int = Query(50, ge=0, le=1000),
    interaction_logger: InteractionLogger = Depends(get_interaction_logger),
):
    """Get the latest interaction log entries, oldest first."""
    entries = await interaction_logger.recent(limit)
    logger.debug(f"[INTERACTIONS] Returning {len(entries)} entries")
    return entries
