"""
Sync Log
Audit rows for every outbound/inbound integration call (Square, Zoho, Resend)
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import SyncLog

logger = logging.getLogger(__name__)


def log_sync(
    db: Session,
    provider: str,
    status: str,
    entity_type: str,
    direction: str = "outbound",
    local_id: Optional[str] = None,
    remote_id: Optional[str] = None,
    message: Optional[str] = None,
    error_message: Optional[str] = None,
    payload: Optional[dict[str, Any]] = None,
) -> Optional[SyncLog]:
    """
    Insert a sync_log row and commit it.

    Audit logging must never break the caller, so a failed insert is rolled
    back and reported in the application log only.
    """
    try:
        entry = SyncLog(
            provider=provider,
            direction=direction,
            status=status,
            entity_type=entity_type,
            local_id=str(local_id) if local_id is not None else None,
            remote_id=remote_id,
            message=message,
            error_message=error_message,
            payload=payload,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to write sync log ({provider}/{entity_type}): {e}")
        return None


def has_successful_sync(db: Session, entity_type: str, local_id: str) -> bool:
    """Whether a successful sync row already exists; used to dedupe cron emails"""
    return (
        db.query(SyncLog.id)
        .filter(
            SyncLog.entity_type == entity_type,
            SyncLog.local_id == str(local_id),
            SyncLog.status == "success",
        )
        .first()
        is not None
    )
