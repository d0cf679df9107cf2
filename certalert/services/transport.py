"""Notification transports: pluggable outbound delivery providers.

Each provider implements NotificationTransport and registers itself by name.
build_transport() selects one from configuration once at startup.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from email.utils import parseaddr
from typing import Callable, Dict, List, Optional, Type
import logging
import time

import requests

from certalert.config import settings as default_settings
from certalert.exceptions import TransportError


# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class OutboundMessage:
    """A rendered message ready for delivery."""
    from_address: str
    recipients: List[str]
    subject: str
    text_body: str
    html_body: str
    reply_to: Optional[str] = None


@dataclass
class TransportReceipt:
    """Successful delivery acknowledgement from a provider."""
    provider: str
    message_id: Optional[str] = None
    accepted: List[str] = field(default_factory=list)


class NotificationTransport(ABC):
    """Capability to deliver one message to its recipients."""

    name = "abstract"

    @abstractmethod
    def send(self, message: OutboundMessage) -> TransportReceipt:
        """
        Deliver a message.

        Args:
            message: Message to send

        Returns:
            TransportReceipt on success

        Raises:
            TransportError: If the provider rejects the message or is unreachable
        """


_TRANSPORTS: Dict[str, Type[NotificationTransport]] = {}


def register_transport(name: str) -> Callable[[Type[NotificationTransport]], Type[NotificationTransport]]:
    """Class decorator registering a transport implementation under a name."""
    def decorator(cls: Type[NotificationTransport]) -> Type[NotificationTransport]:
        cls.name = name
        _TRANSPORTS[name] = cls
        return cls
    return decorator


def available_transports() -> List[str]:
    return sorted(_TRANSPORTS)


@register_transport("log")
class LogOnlyTransport(NotificationTransport):
    """Development fallback: logs the message instead of sending it."""

    def __init__(self, config=None):
        self.sent: List[OutboundMessage] = []

    def send(self, message: OutboundMessage) -> TransportReceipt:
        self.sent.append(message)
        logger.info(
            f"Email (log-only): from={message.from_address} "
            f"to={', '.join(message.recipients)} subject={message.subject!r}"
        )
        return TransportReceipt(provider=self.name, accepted=list(message.recipients))


class HttpEmailTransport(NotificationTransport):
    """Shared retry loop for JSON-over-HTTP email APIs.

    Timeouts, connection errors and 5xx answers are retried up to
    max_retries times with the configured delays; 4xx answers fail at once.
    """

    api_url = ""

    def __init__(self, api_key: str, config=None):
        self.config = config or default_settings
        self.api_key = api_key
        self.timeout = self.config.transport_timeout_seconds
        self.max_retries = self.config.transport_max_retries
        self.retry_delays = list(self.config.transport_retry_delays) or [1]

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @abstractmethod
    def _payload(self, message: OutboundMessage) -> Dict:
        """Build the provider-specific request body."""

    def _message_id(self, response: requests.Response) -> Optional[str]:
        return None

    def _error_detail(self, response: requests.Response) -> str:
        return response.text[:500] or response.reason or f"HTTP {response.status_code}"

    def _wait(self, retry_count: int) -> None:
        delay = self.retry_delays[min(retry_count, len(self.retry_delays) - 1)]
        logger.info(f"Retrying {self.name} in {delay} seconds (attempt {retry_count + 1})")
        time.sleep(delay)

    def send(self, message: OutboundMessage) -> TransportReceipt:
        if not self.api_key:
            raise TransportError(self.name, "API key not configured")
        if not message.recipients:
            raise TransportError(self.name, "message has no recipients")

        payload = self._payload(message)
        retry_count = 0

        while True:
            try:
                response = requests.post(
                    self.api_url,
                    json=payload,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
            except requests.Timeout:
                failure = TransportError(self.name, f"request timed out after {self.timeout}s")
            except requests.RequestException as e:
                failure = TransportError(self.name, str(e)[:500])
            else:
                if 200 <= response.status_code < 300:
                    logger.info(
                        f"{self.name} accepted message for {len(message.recipients)} recipients "
                        f"(status {response.status_code})"
                    )
                    return TransportReceipt(
                        provider=self.name,
                        message_id=self._message_id(response),
                        accepted=list(message.recipients),
                    )

                failure = TransportError(
                    self.name, self._error_detail(response), status_code=response.status_code
                )
                if response.status_code < 500:
                    logger.error(f"{self.name} rejected message: {failure.message}")
                    raise failure

            logger.warning(f"{self.name} delivery attempt failed: {failure.message}")
            if retry_count >= self.max_retries:
                raise failure
            self._wait(retry_count)
            retry_count += 1


@register_transport("resend")
class ResendTransport(HttpEmailTransport):
    """Delivery through the Resend email API."""

    def __init__(self, config=None):
        config = config or default_settings
        super().__init__(config.resend_api_key, config)
        self.api_url = self.config.resend_api_url

    def _payload(self, message: OutboundMessage) -> Dict:
        payload = {
            "from": message.from_address,
            "to": message.recipients,
            "subject": message.subject,
            "html": message.html_body,
            "text": message.text_body,
        }
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        return payload

    def _message_id(self, response: requests.Response) -> Optional[str]:
        try:
            return response.json().get("id")
        except ValueError:
            return None

    def _error_detail(self, response: requests.Response) -> str:
        try:
            return response.json().get("message") or response.reason
        except ValueError:
            return super()._error_detail(response)


@register_transport("sendgrid")
class SendGridTransport(HttpEmailTransport):
    """Delivery through the SendGrid v3 mail API."""

    def __init__(self, config=None):
        config = config or default_settings
        super().__init__(config.sendgrid_api_key, config)
        self.api_url = self.config.sendgrid_api_url

    def _payload(self, message: OutboundMessage) -> Dict:
        display_name, address = parseaddr(message.from_address)
        sender = {"email": address or message.from_address}
        if display_name:
            sender["name"] = display_name

        payload = {
            "personalizations": [{"to": [{"email": r} for r in message.recipients]}],
            "from": sender,
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text_body},
                {"type": "text/html", "value": message.html_body},
            ],
        }
        if message.reply_to:
            payload["reply_to"] = {"email": message.reply_to}
        return payload

    def _message_id(self, response: requests.Response) -> Optional[str]:
        return response.headers.get("X-Message-Id")


def build_transport(config=None) -> NotificationTransport:
    """Instantiate the transport named by configuration.

    HTTP providers without an API key fall back to the log-only transport.

    Args:
        config: Settings object (defaults to the global settings)

    Returns:
        NotificationTransport instance

    Raises:
        ValueError: If the configured name is not registered
    """
    config = config or default_settings
    name = (config.notification_transport or "log").lower()

    if name not in _TRANSPORTS:
        raise ValueError(
            f"Unknown notification transport '{name}'. "
            f"Available: {', '.join(available_transports())}"
        )

    key_by_provider = {
        "resend": config.resend_api_key,
        "sendgrid": config.sendgrid_api_key,
    }
    if name in key_by_provider and not key_by_provider[name]:
        logger.warning(f"{name} selected but no API key configured, using log-only transport")
        name = "log"

    transport = _TRANSPORTS[name](config)
    logger.info(f"Notification transport: {transport.name}")
    return transport
