import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.modules.v1.notifications.models.notification_model import (
    Notification,
    NotificationType,
)

logger = logging.getLogger("app")


class NotificationService:
    """Service for creating, reading and managing in-app notifications."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        user_id: uuid.UUID,
        type: NotificationType,
        title: str,
        message: str,
        ticket_id: Optional[uuid.UUID] = None,
        related_user_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        """
        Persist a notification for one recipient.

        Failures are logged and rolled back; the caller always carries on.

        Returns:
            The stored notification, or None when the insert failed.
        """
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            ticket_id=ticket_id,
            related_user_id=related_user_id,
            notification_metadata=metadata,
        )
        try:
            db.add(notification)
            await db.commit()
            await db.refresh(notification)
            return notification
        except Exception as e:
            await db.rollback()
            logger.error(
                f"Failed to create {type.value} notification for user {user_id} "
                f"(ticket {ticket_id}): {str(e)}",
                exc_info=True,
            )
            return None

    @staticmethod
    async def get_user_notifications(
        db: AsyncSession,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 50,
        skip: int = 0,
    ) -> List[Notification]:
        """Return the user's notifications, newest first."""

        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))

        query = query.order_by(desc(Notification.created_at)).offset(skip).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def mark_as_read(
        db: AsyncSession,
        user_id: uuid.UUID,
        notification_ids: Optional[List[uuid.UUID]] = None,
    ) -> int:
        """
        Mark notifications as read.

        Only notifications owned by ``user_id`` are touched. With no ids every
        unread notification of the user is marked.

        Returns:
            Number of notifications updated.
        """
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        if notification_ids:
            stmt = stmt.where(Notification.id.in_(notification_ids))

        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount or 0

    @staticmethod
    async def count_user_notifications(
        db: AsyncSession, user_id: uuid.UUID, unread_only: bool = False
    ) -> int:
        query = select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await db.execute(query)
        return result.scalar_one()

    @staticmethod
    async def unread_count(db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return result.scalar_one()
