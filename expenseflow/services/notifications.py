"""Notification dispatcher for in-app and push delivery.

Handles:
- In-app notifications shown in the notification bell
- Role fan-out for requests escalated to the next approver tier
- Push delivery through an HTTP push gateway, once per subscription

Delivery is best-effort. Failures are logged and never reach the caller
of a workflow operation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expenseflow.core.config import get_settings
from expenseflow.core.errors import NotificationDeliveryError
from expenseflow.core.rbac.roles import Role
from expenseflow.db.models import (
    Notification,
    NotificationChannel,
    NotificationEventType,
    Profile,
    PushSubscription,
)

logger = logging.getLogger(__name__)

PUSH_TITLE = "ExpenseFlow"
PUSH_TAG = "expense-notification"
PUSH_ICON = "/icon-192x192.png"


@dataclass
class PushMessage:
    """A push payload addressed to one browser subscription."""

    endpoint: str
    p256dh: str
    auth: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_request_body(self) -> Dict[str, Any]:
        return {
            "subscription": {
                "endpoint": self.endpoint,
                "keys": {"p256dh": self.p256dh, "auth": self.auth},
            },
            "payload": self.payload,
        }


class NotificationDispatcher:
    """
    Dispatches notifications to users.

    ``emit`` writes the in-app notification immediately and queues push
    messages for every subscription of the target. ``deliver_push`` sends
    the queue to the gateway; the API schedules it as a background task
    so it runs after the response.
    """

    def __init__(
        self,
        db: Session,
        *,
        gateway_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            db: Database session
            gateway_url: Push gateway URL, push is disabled when unset
            timeout: Gateway request timeout in seconds
            transport: httpx transport override
        """
        settings = get_settings()
        self.db = db
        self.gateway_url = gateway_url if gateway_url is not None else settings.push_gateway_url
        self.timeout = timeout if timeout is not None else settings.push_timeout
        self.transport = transport
        self.outbox: List[PushMessage] = []

    def emit(
        self,
        user_id: UUID,
        message: str,
        link: Optional[str] = None,
        *,
        event_type: Optional[NotificationEventType] = None,
    ) -> Optional[Notification]:
        """
        Notify a single user.

        Returns:
            The stored notification, or None if it could not be written
        """
        try:
            notification = self._store_in_app(user_id, message, link, event_type)
        except NotificationDeliveryError:
            logger.exception(f"Failed to notify user {user_id}")
            return None

        self._queue_push(user_id, message, link)
        return notification

    def notify_role(
        self,
        role: Union[Role, str],
        message: str,
        link: Optional[str] = None,
        *,
        event_type: Optional[NotificationEventType] = None,
        exclude: Optional[UUID] = None,
    ) -> int:
        """
        Notify every active profile holding ``role``.

        Returns:
            Number of in-app notifications written
        """
        role = Role(role)
        try:
            recipients = self.db.query(Profile.id).filter(
                Profile.role == role.value,
                Profile.is_active == True,
            ).all()
        except SQLAlchemyError:
            logger.exception(f"Failed to resolve recipients for role {role.value}")
            return 0

        sent = 0
        for (user_id,) in recipients:
            if exclude is not None and user_id == exclude:
                continue
            if self.emit(user_id, message, link, event_type=event_type) is not None:
                sent += 1

        logger.info(f"Notified {sent} {role.value} user(s): {message}")
        return sent

    async def deliver_push(self) -> int:
        """
        Send queued push messages to the gateway.

        Returns:
            Number of messages the gateway accepted
        """
        pending, self.outbox = self.outbox, []
        if not pending:
            return 0

        if not self.gateway_url:
            logger.debug(f"Push gateway not configured, dropping {len(pending)} message(s)")
            return 0

        delivered = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for push in pending:
                try:
                    await self._post(client, push)
                    delivered += 1
                except NotificationDeliveryError:
                    logger.exception(f"Push delivery to {push.endpoint} failed")

        return delivered

    def _store_in_app(
        self,
        user_id: UUID,
        message: str,
        link: Optional[str],
        event_type: Optional[NotificationEventType],
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            message=message,
            link=link,
            event_type=event_type.value if event_type else None,
        )
        try:
            self.db.add(notification)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise NotificationDeliveryError(NotificationChannel.IN_APP.value, str(e)) from e
        return notification

    def _queue_push(self, user_id: UUID, message: str, link: Optional[str]) -> None:
        if not self.gateway_url:
            return

        try:
            subscriptions = self.db.query(PushSubscription).filter(
                PushSubscription.user_id == user_id
            ).all()
        except SQLAlchemyError:
            logger.exception(f"Failed to load push subscriptions for {user_id}")
            return

        payload = {
            "title": PUSH_TITLE,
            "body": message,
            "url": link or "/",
            "tag": PUSH_TAG,
            "icon": PUSH_ICON,
            "badge": PUSH_ICON,
        }
        for sub in subscriptions:
            self.outbox.append(PushMessage(
                endpoint=sub.endpoint,
                p256dh=sub.p256dh,
                auth=sub.auth,
                payload=payload,
            ))

    async def _post(self, client: httpx.AsyncClient, push: PushMessage) -> None:
        try:
            response = await client.post(self.gateway_url, json=push.to_request_body())
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(NotificationChannel.PUSH.value, str(e)) from e


def list_notifications(db: Session, user_id: UUID, *, limit: int = 20) -> List[Notification]:
    """Most recent notifications of a user, newest first."""
    return db.query(Notification).filter(
        Notification.user_id == user_id
    ).order_by(Notification.created_at.desc()).limit(limit).all()


def unread_count(db: Session, user_id: UUID) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False,
    ).count()


def mark_all_read(db: Session, user_id: UUID) -> int:
    """Mark every unread notification of a user as read."""
    updated = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read == False,
    ).update({Notification.is_read: True}, synchronize_session=False)
    db.commit()
    return updated


def register_subscription(
    db: Session,
    user_id: UUID,
    endpoint: str,
    p256dh: str,
    auth: str,
) -> PushSubscription:
    """Store a push subscription, re-assigning an existing endpoint."""
    subscription = db.query(PushSubscription).filter(
        PushSubscription.endpoint == endpoint
    ).first()

    if subscription:
        subscription.user_id = user_id
        subscription.p256dh = p256dh
        subscription.auth = auth
    else:
        subscription = PushSubscription(
            user_id=user_id,
            endpoint=endpoint,
            p256dh=p256dh,
            auth=auth,
        )
        db.add(subscription)

    db.commit()
    db.refresh(subscription)
    return subscription
