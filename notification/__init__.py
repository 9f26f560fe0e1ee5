"""
Notification Module

Match emails over pluggable channels (SMTP email, webhook, in-app log),
sent synchronously or through the rq 'notifications' queue.

Usage:
    from notification import NotificationService, NotificationChannelFactory

    service = NotificationService(channel_type='email', base_url='https://synapse.app')
    service.send_match_notification(notice)

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
    NotificationMessage,
    NotificationMessageBuilder,
)

from notification.service import (
    NotificationService,
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
    'NotificationMessage',
    'NotificationMessageBuilder',
    # Service
    'NotificationService',
    'process_notification_task',
]
