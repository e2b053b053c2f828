"""
Outbound email hook.

Delivery itself is provided by the hosting infrastructure; this module only
defines the interface the endpoints call and a default that records the
send in the log. Template data may contain token plaintext, so it is never
logged.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

TEMPLATE_USER_WELCOME = "user_welcome"
TEMPLATE_TOKEN_ACTIVATION = "token_activation"
TEMPLATE_TOKEN_PASSWORD_RESET = "token_password_reset"


class Mailer(Protocol):
    def send(self, recipient: str, template: str, data: dict[str, Any]) -> None: ...


class LoggingMailer:
    def send(self, recipient: str, template: str, data: dict[str, Any]) -> None:
        logger.info("Email %r queued for %s", template, recipient)
