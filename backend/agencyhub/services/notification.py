"""Notification service for creating in-app notifications."""

from collections.abc import Iterable
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agencyhub.models.activity import Notification

logger = structlog.get_logger()


class NotificationService:
    """Service for creating user notifications.

    Delivery is best-effort. Workflow services call it only after their own
    batch has committed, and a failure here is logged and dropped so it can
    never undo or block the transition that triggered it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: UUID | str,
        notification_type: str,
        title: str,
        message: str,
        target_type: str | None = None,
        target_id: UUID | None = None,
        sender_id: UUID | None = None,
    ) -> Notification | None:
        """Create a notification for one user."""
        created = await self.notify_many(
            [user_id],
            notification_type=notification_type,
            title=title,
            message=message,
            target_type=target_type,
            target_id=target_id,
            sender_id=sender_id,
        )
        return created[0] if created else None

    async def notify_many(
        self,
        user_ids: Iterable[UUID | str],
        notification_type: str,
        title: str,
        message: str,
        target_type: str | None = None,
        target_id: UUID | None = None,
        sender_id: UUID | None = None,
    ) -> list[Notification]:
        """
        Create notifications for multiple users in one commit.

        Args:
            user_ids: Recipients; duplicates and the sender are skipped
            notification_type: Type of notification (e.g., 'approval_request')
            title: Notification title
            message: Notification body
            target_type: Optional entity type for navigation (e.g., 'task')
            target_id: Optional entity ID for navigation
            sender_id: Optional sender/actor user ID

        Returns:
            Created notifications; empty if delivery failed
        """
        recipients: list[UUID] = []
        for raw_id in user_ids:
            user_id = raw_id if isinstance(raw_id, UUID) else UUID(str(raw_id))
            # Don't notify users about their own actions
            if sender_id and user_id == sender_id:
                logger.debug(
                    "skipping_self_notification",
                    user_id=str(user_id),
                    notification_type=notification_type,
                )
                continue
            if user_id not in recipients:
                recipients.append(user_id)

        if not recipients:
            return []

        notifications = [
            Notification(
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
                target_type=target_type,
                target_id=target_id,
                sender_id=sender_id,
                is_read=False,
            )
            for user_id in recipients
        ]

        try:
            self.db.add_all(notifications)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.warning(
                "notification_delivery_failed",
                notification_type=notification_type,
                recipients=len(recipients),
                error=str(exc),
            )
            return []

        logger.info(
            "notifications_created",
            notification_type=notification_type,
            recipients=len(recipients),
            target_id=str(target_id) if target_id else None,
        )
        return notifications
