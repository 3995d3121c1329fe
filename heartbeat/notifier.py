#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Email notifications for server state changes.

Subjects and bodies come from the smtp section of the configuration and
may contain %UUID% and %NAME% placeholders. Sends are synchronous and
never retried; failures are raised as NotificationError.
"""

import logging
import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.utils import formataddr

from .errors import NotificationError

logger = logging.getLogger("Heartbeat")


class EmailNotifier:
    def __init__(self, smtp_config):
        self.config = smtp_config

    @staticmethod
    def render(template, server_id, name):
        """Substitute %UUID% and %NAME% into a template."""
        return template.replace("%UUID%", str(server_id)).replace("%NAME%", name)

    def down(self, server_id, name):
        """Send the 'server down' email."""
        subject = self.render(self.config['down_subject'], server_id, name)
        body = self.render(self.config['down_body'], server_id, name)
        self._send_for(server_id, subject, body)

    def up(self, server_id, name):
        """Send the 'server back up' email."""
        subject = self.render(self.config['up_subject'], server_id, name)
        body = self.render(self.config['up_body'], server_id, name)
        self._send_for(server_id, subject, body)

    def _send_for(self, server_id, subject, body):
        try:
            self.send(None, subject, body)
        except NotificationError as e:
            e.server_id = server_id
            raise

    def send(self, to, subject, body):
        """Send one plain text email. `to` defaults to the configured recipient."""
        if to is None:
            to = formataddr((self.config.get('to_name', ''), self.config['to_email']))

        msg = MIMEText(body, 'plain', 'utf-8')
        msg['From'] = formataddr((self.config.get('from_name', ''), self.config['from_email']))
        msg['To'] = to
        msg['Subject'] = subject

        try:
            with smtplib.SMTP(self.config['hostname'],
                              self.config['port'],
                              timeout=self.config.get('timeout', 30)) as server:
                if self.config.get('use_tls', True):
                    server.starttls()
                server.login(self.config['username'],
                             self.config['password'])
                server.send_message(msg)
        except Exception as e:
            # smtplib also raises UnicodeEncodeError for non-ASCII credentials
            raise NotificationError(f"Failed to send email '{subject}': {e}") from e

        logger.info(f"Email sent to {to}: {subject}")

    def send_test_email(self):
        """Send a test email to verify SMTP settings."""
        subject = "Heartbeat Monitor Test Email"
        body = ("This is a test email from the heartbeat monitor.\n"
                f"Sent: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        try:
            self.send(None, subject, body)
        except NotificationError as e:
            logger.error(f"Failed to send test email: {e}")
            return False
        logger.info("Test email sent successfully")
        return True
