#!/usr/bin/env python3
"""
Tests for notification channels.

Usage:
    python -m pytest tests/unit/notification/test_channels.py -v
"""

import os
import unittest
from unittest.mock import Mock, MagicMock, patch

import requests

from notification import (
    EmailChannel,
    InAppChannel,
    NotificationChannel,
    NotificationChannelFactory,
    WebhookChannel,
)
from notification.channels import _sanitize_url, is_dry_run_mode, mask_email

SMTP_ENV = {
    'SMTP_SERVER': 'smtp.example.org',
    'SMTP_PORT': '587',
    'SMTP_USERNAME': 'funnel@example.org',
    'SMTP_PASSWORD': 'password',
}


class TestEmailChannel(unittest.TestCase):

    def setUp(self):
        self.env = patch.dict(os.environ, SMTP_ENV)
        self.env.start()

    def tearDown(self):
        self.env.stop()

    def test_validation_missing_config(self):
        with patch.dict(os.environ, {'SMTP_PASSWORD': ''}):
            self.assertFalse(EmailChannel().validate_config())

    def test_send_without_config_fails(self):
        with patch.dict(os.environ, {'SMTP_SERVER': ''}):
            self.assertFalse(EmailChannel().send('r@example.org', 'Subject', 'Body', {}))

    @patch('notification.channels.smtplib.SMTP')
    def test_send_success(self, mock_smtp_class):
        mock_smtp = Mock()
        mock_smtp_class.return_value.__enter__ = Mock(return_value=mock_smtp)
        mock_smtp_class.return_value.__exit__ = Mock(return_value=False)

        result = EmailChannel().send('reviewer@example.org', 'Review needed', 'Body', {})

        self.assertTrue(result)
        mock_smtp_class.assert_called_once_with('smtp.example.org', 587)
        mock_smtp.starttls.assert_called_once()
        mock_smtp.login.assert_called_once_with('funnel@example.org', 'password')
        message = mock_smtp.send_message.call_args[0][0]
        self.assertEqual(message['To'], 'reviewer@example.org')
        self.assertEqual(message['Subject'], 'Review needed')
        self.assertEqual(len(message.get_payload()), 1)

    @patch('notification.channels.smtplib.SMTP')
    def test_links_render_as_html_buttons(self, mock_smtp_class):
        mock_smtp = Mock()
        mock_smtp_class.return_value.__enter__ = Mock(return_value=mock_smtp)
        mock_smtp_class.return_value.__exit__ = Mock(return_value=False)
        links = [
            {'label': 'Approve', 'url': 'https://funnel.example.org/approve?token=t&x=1', 'colour': '#27ae60'},
            {'label': 'Bad', 'url': 'javascript:alert(1)'},
        ]

        self.assertTrue(EmailChannel().send('r@example.org', 'Review', 'Body', {'links': links}))

        message = mock_smtp.send_message.call_args[0][0]
        plain, html_part = message.get_payload()
        html = html_part.get_payload(decode=True).decode('utf-8')
        self.assertIn('href="https://funnel.example.org/approve?token=t&amp;x=1"', html)
        self.assertIn('>Approve</a>', html)
        self.assertNotIn('javascript', html)

    @patch('notification.channels.smtplib.SMTP')
    def test_smtp_failure_returns_false(self, mock_smtp_class):
        import smtplib
        mock_smtp_class.side_effect = smtplib.SMTPConnectError(421, 'unavailable')
        self.assertFalse(EmailChannel().send('r@example.org', 'Subject', 'Body', {}))


class TestWebhookChannel(unittest.TestCase):

    @patch('notification.channels._validate_webhook_url', return_value=True)
    @patch('notification.channels.requests.post')
    def test_send_success(self, mock_post, mock_validate):
        mock_post.return_value = MagicMock(status_code=200)

        result = WebhookChannel().send('https://hooks.example.org/funnel', 'Subject', 'Body', {'k': 'v'})

        self.assertTrue(result)
        payload = mock_post.call_args[1]['json']
        self.assertEqual(payload['subject'], 'Subject')
        self.assertEqual(payload['metadata'], {'k': 'v'})

    @patch('notification.channels._validate_webhook_url', return_value=True)
    @patch('notification.channels.requests.post')
    def test_http_error_returns_false(self, mock_post, mock_validate):
        mock_post.return_value.raise_for_status.side_effect = requests.HTTPError('500')
        self.assertFalse(WebhookChannel().send('https://hooks.example.org/x', 'S', 'B', {}))

    @patch('notification.channels.requests.post')
    def test_private_address_rejected(self, mock_post):
        self.assertFalse(WebhookChannel().send('http://127.0.0.1/hook', 'S', 'B', {}))
        self.assertFalse(WebhookChannel().send('ftp://example.org/hook', 'S', 'B', {}))
        mock_post.assert_not_called()


class TestInAppChannel(unittest.TestCase):

    def test_logs_and_succeeds(self):
        with self.assertLogs('notification.channels', level='INFO') as logs:
            self.assertTrue(InAppChannel().send('reviewer', 'Subject', 'Body', {}))
        self.assertTrue(any('Subject' in line for line in logs.output))


class TestNotificationChannelFactory(unittest.TestCase):

    def test_builtin_channels(self):
        self.assertIsInstance(NotificationChannelFactory.get_channel('email'), EmailChannel)
        self.assertIsInstance(NotificationChannelFactory.get_channel('WEBHOOK'), WebhookChannel)
        self.assertIsInstance(NotificationChannelFactory.get_channel('in_app'), InAppChannel)

    def test_unknown_channel(self):
        with self.assertRaises(ValueError):
            NotificationChannelFactory.get_channel('carrier_pigeon')

    def test_register_channel(self):
        class SmsChannel(NotificationChannel):
            @property
            def channel_type(self):
                return 'sms'

            def send(self, recipient, subject, body, metadata):
                return True

        original = dict(NotificationChannelFactory._channels)
        try:
            NotificationChannelFactory.register_channel('sms', SmsChannel)
            self.assertIn('sms', NotificationChannelFactory.list_channels())
            self.assertIsInstance(NotificationChannelFactory.get_channel('sms'), SmsChannel)
        finally:
            NotificationChannelFactory._channels = original

    def test_register_rejects_non_channel(self):
        with self.assertRaises(ValueError):
            NotificationChannelFactory.register_channel('bad', dict)


class TestHelpers(unittest.TestCase):

    def test_mask_email(self):
        self.assertEqual(mask_email('founder@acme.example'), '***@acme.example')
        self.assertEqual(mask_email('not-an-email'), '***')

    def test_sanitize_url(self):
        self.assertEqual(_sanitize_url('https://a.example/?x=1&y=2'), 'https://a.example/?x=1&amp;y=2')
        self.assertIsNone(_sanitize_url('javascript:alert(1)'))

    def test_dry_run_flag(self):
        with patch.dict(os.environ, {'NOTIFICATION_DRY_RUN': 'true'}):
            self.assertTrue(is_dry_run_mode())
        with patch.dict(os.environ, {'NOTIFICATION_DRY_RUN': 'no'}):
            self.assertFalse(is_dry_run_mode())


if __name__ == '__main__':
    unittest.main()
