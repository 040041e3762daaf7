#!/usr/bin/env python3
"""
Notification Channels

Every channel implements the same send() contract and reports delivery
with a boolean; the gateway decides what a failed delivery means for the
owning workflow instance.

Usage:
    from notification.channels import NotificationChannelFactory

    channel = NotificationChannelFactory.get_channel('email')
    channel.send(recipient, subject, body, metadata)
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import logging
import os
import html

import requests
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
import urllib.parse
import ipaddress
import socket

logger = logging.getLogger(__name__)


def _validate_webhook_url(url: str) -> bool:
    """True when url is http(s) and every address its host resolves to is public."""
    parsed = urllib.parse.urlparse(url)

    if parsed.scheme not in ('http', 'https'):
        logger.error(f"Invalid URL scheme: {parsed.scheme}")
        return False

    if not parsed.hostname:
        logger.error("URL missing hostname")
        return False

    try:
        addrinfo = socket.getaddrinfo(parsed.hostname, None)
    except socket.gaierror:
        logger.error(f"Could not resolve hostname: {parsed.hostname}")
        return False

    for _, _, _, _, sockaddr in addrinfo:
        ip = ipaddress.ip_address(sockaddr[0])
        if ip.is_private or ip.is_loopback or ip.is_reserved or ip.is_link_local:
            logger.error(f"URL resolves to private/reserved IP: {ip}")
            return False
    return True


def _sanitize_url(url: str) -> Optional[str]:
    """Escape an http(s) URL for embedding in HTML, None for anything else."""
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ('http', 'https'):
        return None
    return html.escape(url, quote=True)


def is_dry_run_mode() -> bool:
    """Check if notification channels should run in dry-run (log-only) mode."""
    return os.environ.get('NOTIFICATION_DRY_RUN', '').lower() in ('true', '1', 'yes')


def mask_email(email: str) -> str:
    """Applicant and reviewer addresses are logged as "***@domain" only."""
    _, at, domain = email.rpartition('@')
    return f"***@{domain}" if at else "***"


class NotificationChannel(ABC):
    """One way of delivering a rendered funnel message to a recipient."""

    @property
    @abstractmethod
    def channel_type(self) -> str:
        """Return the channel type identifier."""
        pass

    @abstractmethod
    def send(self, recipient: str, subject: str, body: str, metadata: Dict[str, Any]) -> bool:
        """
        Deliver one message. Returns False on a delivery failure.

        recipient is an email address or a URL depending on the channel.
        metadata['links'] holds the decision links as label/url dicts;
        channels that can render buttons do so, the rest ignore it.
        """
        pass

    def validate_config(self) -> bool:
        return True


class EmailChannel(NotificationChannel):
    """Email notification channel via SMTP."""

    @property
    def channel_type(self) -> str:
        return 'email'

    def validate_config(self) -> bool:
        required_vars = ['SMTP_SERVER', 'SMTP_PORT', 'SMTP_USERNAME', 'SMTP_PASSWORD']
        return all(os.environ.get(var) for var in required_vars)

    def send(self, recipient: str, subject: str, body: str, metadata: Dict[str, Any]) -> bool:
        if not self.validate_config():
            logger.error("SMTP_SERVER, SMTP_PORT, SMTP_USERNAME and SMTP_PASSWORD must be set for email")
            return False

        msg = self._compose(recipient, subject, body, metadata.get('links') or [])
        try:
            port = int(os.environ['SMTP_PORT'])
            with smtplib.SMTP(os.environ['SMTP_SERVER'], port) as server:
                server.starttls()
                server.login(os.environ['SMTP_USERNAME'], os.environ['SMTP_PASSWORD'])
                server.send_message(msg)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            logger.error(f"SMTP delivery to {mask_email(recipient)} failed: {e}")
            return False

        logger.info(f"Email sent to {mask_email(recipient)}")
        return True

    def _compose(self, recipient: str, subject: str, body: str, links: list) -> MIMEMultipart:
        msg = MIMEMultipart('alternative')
        msg['From'] = os.environ.get('FROM_EMAIL', 'noreply@supply-funnel.app')
        msg['To'] = recipient
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'plain', 'utf-8'))
        if links:
            msg.attach(MIMEText(self._build_html_body(subject, body, links), 'html', 'utf-8'))
        return msg

    def _build_html_body(self, subject: str, body: str, links: list) -> str:
        """Plain body in a <pre> block followed by one button per link."""
        buttons = []
        for link in links:
            safe_url = _sanitize_url(link.get('url', ''))
            if not safe_url:
                continue
            label = html.escape(link.get('label', 'Open'))
            colour = html.escape(link.get('colour', '#2c3e50'))
            buttons.append(
                f'<a href="{safe_url}" style="display:inline-block;padding:10px 18px;'
                f'margin:4px;border-radius:4px;color:#fff;background:{colour};'
                f'text-decoration:none;">{label}</a>'
            )
        return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <h2>{html.escape(subject)}</h2>
    <pre style="font-family: inherit; white-space: pre-wrap;">{html.escape(body)}</pre>
    <div>{''.join(buttons)}</div>
</body>
</html>"""


class WebhookChannel(NotificationChannel):
    """Generic webhook notification channel. The recipient is the URL."""

    @property
    def channel_type(self) -> str:
        return 'webhook'

    def send(self, recipient: str, subject: str, body: str, metadata: Dict[str, Any]) -> bool:
        webhook_url = recipient

        if not _validate_webhook_url(webhook_url):
            logger.error(f"Invalid or unsafe webhook URL: {webhook_url}")
            return False

        headers = {
            'Content-Type': 'application/json',
            'User-Agent': 'Supply-Funnel-Notification-Service/1.0'
        }
        payload = {
            'subject': subject,
            'body': body,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'metadata': metadata,
        }

        try:
            response = requests.post(webhook_url, json=payload, headers=headers, timeout=30)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to send webhook: {e}")
            return False

        parsed = urllib.parse.urlparse(webhook_url)
        logger.info(f"Webhook sent to {parsed.scheme}://{parsed.hostname}{parsed.path}")
        return True


class InAppChannel(NotificationChannel):
    """Log-only channel, used for local development."""

    @property
    def channel_type(self) -> str:
        return 'in_app'

    def send(self, recipient: str, subject: str, body: str, metadata: Dict[str, Any]) -> bool:
        logger.info(f"[IN_APP] Recipient: {recipient}, Title: {subject}\n{body}")
        return True


class NotificationChannelFactory:
    """Registry of channel classes keyed by the `notifications.channel` config value."""

    _channels: Dict[str, type] = {
        'email': EmailChannel,
        'webhook': WebhookChannel,
        'in_app': InAppChannel,
    }

    @classmethod
    def get_channel(cls, channel_type: str) -> NotificationChannel:
        """Raises ValueError for a name nobody registered."""
        try:
            return cls._channels[channel_type.lower()]()
        except KeyError:
            known = ', '.join(sorted(cls._channels))
            raise ValueError(f"Unknown channel type '{channel_type}' (known: {known})") from None

    @classmethod
    def register_channel(cls, channel_type: str, channel_class: type):
        if not (isinstance(channel_class, type) and issubclass(channel_class, NotificationChannel)):
            raise ValueError(f"{channel_class!r} is not a NotificationChannel")
        cls._channels[channel_type.lower()] = channel_class
        logger.info(f"Channel '{channel_type}' registered")

    @classmethod
    def list_channels(cls) -> list:
        return sorted(cls._channels)
