#!/usr/bin/env python3
"""
Notification Service - MatchNotifier backed by notification channels.

Delivers the "you have been matched" message to the candidate and the
introduction emails to both sides of an accepted match. With an async
queue the messages are enqueued on the rq 'notifications' queue and a
worker sends them; otherwise they are sent synchronously.

Usage:
    from notification.service import NotificationService

    service = NotificationService(channel_type='email', base_url='https://synapse.app')
    result = service.send_match_notification(notice)
    if not result.success:
        logger.error(result.error)
"""

import os
import logging
from typing import Optional, Dict, Any, List

from redis import Redis
from rq import Queue, Retry

from core.interfaces import MatchNotifier, MatchNotice, NotificationResult
from notification.channels import NotificationChannelFactory
from notification.message_builder import NotificationMessageBuilder, NotificationMessage

logger = logging.getLogger(__name__)


class NotificationService(MatchNotifier):
    """
    Sends match emails through one channel type.

    Every failure is reported through NotificationResult; nothing raises
    out of send_match_notification or send_connection_email.
    """

    def __init__(
        self,
        channel_type: str = 'email',
        redis_url: Optional[str] = None,
        base_url: Optional[str] = None,
        use_async_queue: bool = False,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        webhook_url: Optional[str] = None,
        expiry_days: int = 7
    ):
        """
        Initialize notification service.

        Args:
            channel_type: email, webhook or in_app
            redis_url: Redis connection URL for the async queue
            base_url: Base URL for links in notifications (injected from config)
            use_async_queue: Whether to use async queue or sync mode
            from_email: Sender address for email
            from_name: Sender display name for email
            webhook_url: Target URL when channel_type is webhook
            expiry_days: Shown in the match email
        """
        self.channel_type = channel_type
        self.from_email = from_email
        self.from_name = from_name
        self.webhook_url = webhook_url

        self.redis_url = redis_url or os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
        self.base_url = base_url or os.environ.get('BASE_URL', 'http://localhost:3000')
        self.builder = NotificationMessageBuilder(self.base_url, expiry_days)

        # Redirects every email to one inbox while developing
        self.test_email_override = os.environ.get('TEST_EMAIL_OVERRIDE') or None

        if not use_async_queue:
            logger.info("Async queue disabled via config. Using sync mode.")
            self.redis_conn = None
            self.queue = None
            self.async_mode = False
        else:
            try:
                self.redis_conn = Redis.from_url(self.redis_url)
                # Validate connection with ping before using
                self.redis_conn.ping()
                self.queue = Queue('notifications', connection=self.redis_conn)
                self.async_mode = True
                logger.info("Notification service connected to Redis")
            except Exception as e:
                logger.error(f"Redis connection failed: {e}. Falling back to sync mode.")
                self.redis_conn = None
                self.queue = None
                self.async_mode = False

    def send_match_notification(self, notice: MatchNotice) -> NotificationResult:
        if not notice.candidate_email:
            return NotificationResult(success=False, error=f"No email for candidate of match {notice.match_id}")

        message = self.builder.build_match_notification(notice)
        return self._send_all([message], notice)

    def send_connection_email(self, notice: MatchNotice) -> NotificationResult:
        messages = self.builder.build_connection_messages(notice)
        if len(messages) < 2:
            return NotificationResult(success=False, error=f"Missing email address for match {notice.match_id}")

        return self._send_all(messages, notice)

    def _send_all(self, messages: List[NotificationMessage], notice: MatchNotice) -> NotificationResult:
        errors = []
        for message in messages:
            try:
                if not self.send_notification(message, notice):
                    errors.append(f"{message.event_type} to recipient failed")
            except Exception as e:
                logger.error(f"Failed to send {message.event_type} for match {notice.match_id}: {e}")
                errors.append(str(e))

        if errors:
            return NotificationResult(success=False, error="; ".join(errors))
        return NotificationResult(success=True)

    def send_notification(self, message: NotificationMessage, notice: MatchNotice) -> bool:
        """Send or enqueue one message. In async mode True means queued."""
        notification_data = self._build_notification_data(message, notice)

        if self.async_mode:
            retry_policy = Retry(max=3, interval=[30, 60, 120])
            job = self.queue.enqueue(
                process_notification_task,
                notification_data,
                job_timeout='5m',
                result_ttl=86400,
                retry=retry_policy
            )
            logger.info(f"Queued {message.event_type} for match {notice.match_id} as job {job.id}")
            return True

        return process_notification_task(notification_data)

    def _build_notification_data(self, message: NotificationMessage, notice: MatchNotice) -> Dict[str, Any]:
        recipient = message.recipient
        if self.test_email_override:
            logger.info(f"TEST_EMAIL_OVERRIDE set; redirecting {message.event_type} for match {notice.match_id}")
            recipient = self.test_email_override

        metadata = {
            'match_id': notice.match_id,
            'request_id': notice.request_id,
            'event_type': message.event_type,
            'html_body': message.html_body,
            'from_email': self.from_email,
            'from_name': self.from_name,
            'to': recipient,
        }
        if self.channel_type == 'webhook':
            recipient = self.webhook_url or ''

        return {
            'channel_type': self.channel_type,
            'recipient': recipient,
            'subject': message.subject,
            'body': message.body,
            'metadata': metadata,
        }

    def get_queue_status(self) -> Dict[str, Any]:
        """Get queue status."""
        if not self.async_mode:
            return {'status': 'sync_mode', 'queue_length': 0}

        try:
            return {
                'status': 'active',
                'queue_length': len(self.queue),
                'redis_connected': self.redis_conn.ping()
            }
        except Exception as e:
            return {'status': 'error', 'error': str(e)}


# Worker task - must be at module level for RQ
def process_notification_task(notification_data: Dict[str, Any]) -> bool:
    """Send one notification through its channel (called by RQ worker or inline)."""
    channel_type = notification_data['channel_type']
    metadata = notification_data.get('metadata', {})

    logger.info(f"Processing {metadata.get('event_type', 'notification')} "
                f"for match {metadata.get('match_id')} via {channel_type}")

    channel = NotificationChannelFactory.get_channel(channel_type)
    success = channel.send(
        notification_data['recipient'],
        notification_data['subject'],
        notification_data['body'],
        metadata
    )

    if not success:
        logger.error(f"Notification for match {metadata.get('match_id')} failed to send")
    return success
