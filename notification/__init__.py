"""
Notification Module

Reviewer decision requests and applicant outcome messages, delivered
through pluggable channels either inline or via a Redis Queue.

Usage:
    from notification import NotificationGateway, NotificationChannelFactory

    gateway = NotificationGateway(channel_type='email')
    gateway.send('reviewer@example.com', 'Review needed', 'Details...')

    channel = NotificationChannelFactory.get_channel('email')
    channel.send('user@example.com', 'Subject', 'Body', {})
"""

from notification.channels import (
    NotificationChannel,
    EmailChannel,
    WebhookChannel,
    InAppChannel,
    NotificationChannelFactory,
)

from notification.message_builder import (
    DecisionRequestContent,
    NotificationMessage,
    NotificationMessageBuilder,
    ReportLink,
)

from notification.service import (
    NotificationGateway,
    process_notification_task,
)

__all__ = [
    # Channels
    'NotificationChannel',
    'EmailChannel',
    'WebhookChannel',
    'InAppChannel',
    'NotificationChannelFactory',
    # Messages
    'DecisionRequestContent',
    'NotificationMessage',
    'NotificationMessageBuilder',
    'ReportLink',
    # Gateway
    'NotificationGateway',
    'process_notification_task',
]
