"""Outbound notification of password reset links.

There is no mail transport: the link is written to the server log, which is
where an operator picks it up during development.
"""

import logging
from typing import Protocol
from urllib.parse import urlencode

logger = logging.getLogger("forum_auth")


class ResetNotifier(Protocol):
    def send_reset_link(self, email: str, token: str) -> None: ...


class LoggingResetNotifier:
    """Logs the reset link instead of mailing it."""

    def __init__(self, reset_url_base: str) -> None:
        self.reset_url_base = reset_url_base.rstrip("?")

    def build_link(self, token: str) -> str:
        return f"{self.reset_url_base}?{urlencode({'token': token})}"

    def send_reset_link(self, email: str, token: str) -> None:
        logger.info("PASSWORD RESET for %s: %s", email, self.build_link(token))
