import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prizedraw.models.audit_log import AuditAction, AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Append-only audit trail. Records are staged on the caller's session and
    committed together with the change they describe."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def close(self):
        await self.db.close()

    def append(
        self,
        action: AuditAction | str,
        actor_id: Optional[str],
        target_type: str,
        target_id: Optional[str],
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        entry = AuditLog(
            action=str(action),
            actor_id=actor_id,
            target_type=target_type,
            target_id=target_id,
            details=details or {},
            timestamp=datetime.now(timezone.utc),
        )
        self.db.add(entry)
        logger.debug(f"Audit {action} on {target_type}:{target_id} by {actor_id}")
        return entry

    async def latest_for_target(
        self, target_id: str, action: Optional[AuditAction | str] = None
    ) -> AuditLog | None:
        query = select(AuditLog).where(AuditLog.target_id == target_id)
        if action is not None:
            query = query.where(AuditLog.action == str(action))

        result = await self.db.execute(query.order_by(AuditLog.timestamp.desc()))
        return result.scalars().first()
