import logging

from fastapi import APIRouter, Depends, Query

from required_plugins.core.auth import require_admin
from required_plugins.core.logging_config import log_buffer

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = logging.getLogger(__name__)


@router.get("/log", dependencies=[Depends(require_admin)])
async def get_logs(limit: int = Query(100, ge=1, le=1000)):
    """Get recent logs from memory buffer."""
    logs = list(log_buffer)[-limit:]
    return {"logs": logs}
