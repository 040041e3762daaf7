#!/usr/bin/env python3
"""
Notification Gateway

Delivers a message through one configured channel, either inline or via
a Redis Queue. A failed inline delivery raises DownstreamError; a failed
queued delivery marks the owning workflow instance as failed from the
worker.

Usage:
    from notification.service import NotificationGateway

    gateway = NotificationGateway(channel_type="email")
    gateway.send("reviewer@example.com", "Review needed", "Details...")
"""

import os
import logging
import uuid
from typing import Optional, Dict, Any

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue

from core.errors import DownstreamError
from notification.channels import NotificationChannelFactory, is_dry_run_mode, mask_email

logger = logging.getLogger(__name__)

QUEUE_NAME = 'notifications'


class NotificationGateway:
    """
    send(recipient, subject, body) for the workflow engine.

    Sync mode surfaces failures to the caller. Async mode only fails at
    enqueue time; delivery failures are reported by the worker.
    """

    def __init__(
        self,
        channel_type: str = "email",
        use_async_queue: bool = False,
        redis_url: Optional[str] = None,
        queue: Optional[Queue] = None
    ):
        self.channel_type = channel_type
        # Fail fast on typos in config
        NotificationChannelFactory.get_channel(channel_type)

        self.redis_url = redis_url or os.environ.get('REDIS_URL', 'redis://localhost:6379/0')

        if queue is not None:
            self.queue = queue
            self.async_mode = True
        elif not use_async_queue:
            logger.info("Async queue disabled via config. Using sync mode.")
            self.queue = None
            self.async_mode = False
        else:
            try:
                redis_conn = Redis.from_url(self.redis_url)
                redis_conn.ping()
                self.queue = Queue(QUEUE_NAME, connection=redis_conn)
                self.async_mode = True
                logger.info("Notification gateway connected to Redis")
            except RedisError as e:
                logger.error(f"Redis connection failed: {e}. Falling back to sync mode.")
                self.queue = None
                self.async_mode = False

    def send(
        self,
        recipient: Optional[str],
        subject: str,
        body: str,
        metadata: Optional[Dict[str, Any]] = None,
        instance_id: Optional[str] = None
    ) -> str:
        """
        Deliver or enqueue one message.

        Returns:
            Notification id (the RQ job id in async mode)

        Raises:
            DownstreamError: Missing recipient, enqueue failure, or a failed
                inline delivery
        """
        if not recipient:
            raise DownstreamError(f"No recipient configured for '{subject}'")

        notification_data = {
            'channel_type': self.channel_type,
            'recipient': recipient,
            'subject': subject,
            'body': body,
            'metadata': metadata or {},
            'instance_id': instance_id,
        }

        if self.async_mode:
            try:
                job = self.queue.enqueue(
                    process_notification_task,
                    notification_data,
                    job_timeout='5m',
                    result_ttl=86400
                )
            except RedisError as e:
                raise DownstreamError(f"Failed to queue notification: {e}") from e
            logger.info(f"Queued notification as job {job.id}")
            return job.id

        notification_id, success = deliver(notification_data)
        if not success:
            raise DownstreamError(
                f"Failed to deliver '{subject}' to {mask_email(recipient)} via {self.channel_type}"
            )
        return notification_id

    def get_queue_status(self) -> Dict[str, Any]:
        if not self.async_mode:
            return {'status': 'sync_mode', 'queue_length': 0}
        try:
            return {'status': 'active', 'queue_length': len(self.queue)}
        except RedisError as e:
            return {'status': 'error', 'error': str(e)}


def deliver(notification_data: Dict[str, Any]) -> tuple:
    """Send through the channel. Returns (notification_id, success)."""
    notification_id = str(uuid.uuid4())
    channel_type = notification_data['channel_type']

    if is_dry_run_mode():
        logger.info(
            f"[DRY RUN] Notification {notification_id} via {channel_type} to "
            f"{mask_email(notification_data['recipient'])}: {notification_data['subject']}"
        )
        return notification_id, True

    channel = NotificationChannelFactory.get_channel(channel_type)
    success = channel.send(
        notification_data['recipient'],
        notification_data['subject'],
        notification_data['body'],
        notification_data.get('metadata', {})
    )
    if success:
        logger.info(f"Notification {notification_id} sent successfully")
    else:
        logger.error(f"Notification {notification_id} failed to send")
    return notification_id, success


# Worker task - must be at module level for RQ
def process_notification_task(notification_data: Dict[str, Any]) -> str:
    """
    Deliver a queued notification (called by RQ worker).

    A failed delivery moves the owning workflow instance to failed with
    reason notification-failed.
    """
    notification_id, success = deliver(notification_data)
    instance_id = notification_data.get('instance_id')

    if not success and instance_id:
        from core.workflow.failure import mark_failed
        from core.workflow.states import FailureReason
        from database.database import get_session_factory

        mark_failed(
            get_session_factory(),
            instance_id,
            FailureReason.NOTIFICATION_FAILED,
            detail=f"Queued delivery {notification_id} via {notification_data['channel_type']} failed"
        )
    return notification_id
