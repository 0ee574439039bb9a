"""
Channel senders used by the delivery dispatcher.

A sender delivers one rendered notification to one recipient on one channel
and reports the outcome as a SendResult. Transports are pluggable: the
default logging sender only records the delivery, while the webhook sender
POSTs the notification as JSON to a configured URL.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from core.config import NOTIFICATION_WEBHOOK_URLS, WEBHOOK_TIMEOUT_SECONDS
from core.constants import CHANNELS

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Outcome of a single channel delivery."""
    success: bool
    error: Optional[str] = None


class ChannelSender(Protocol):
    """Transport for one delivery channel."""

    def send(
        self,
        recipient_id: str,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SendResult:
        ...


class LoggingChannelSender:
    """
    Sender that logs the delivery and reports success.

    Used for channels without a configured transport.
    """

    def __init__(self, channel: str):
        self.channel = channel

    def send(
        self,
        recipient_id: str,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SendResult:
        logger.info(f"[{self.channel}] Delivered to {recipient_id}: {title}")
        return SendResult(success=True)


class WebhookChannelSender:
    """
    Sender that POSTs the notification to an HTTP endpoint.

    Non-2xx responses and transport errors are reported as failed results
    instead of being raised.
    """

    def __init__(
        self,
        channel: str,
        url: str,
        timeout: float = WEBHOOK_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None
    ):
        """
        Args:
            channel: Channel name included in the payload
            url: Endpoint receiving the POST
            timeout: Request timeout in seconds
            client: Optional preconfigured httpx client (tests pass one with a mock transport)
        """
        self.channel = channel
        self.url = url
        self.timeout = timeout
        self._client = client

    def send(
        self,
        recipient_id: str,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SendResult:
        payload = {
            "channel": self.channel,
            "recipientId": recipient_id,
            "title": title,
            "message": message,
            "data": metadata or {},
        }
        try:
            if self._client is not None:
                response = self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                response = httpx.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            logger.debug(f"[{self.channel}] Webhook accepted notification for {recipient_id}")
            return SendResult(success=True)
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"[{self.channel}] Webhook rejected notification for {recipient_id}: "
                f"{e.response.status_code} - {e.response.text}"
            )
            return SendResult(success=False, error=f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"[{self.channel}] Webhook request failed for {recipient_id}: {e}")
            return SendResult(success=False, error=str(e) or e.__class__.__name__)


def build_default_senders() -> Dict[str, ChannelSender]:
    """
    Build one sender per channel.

    Channels with a NOTIFICATION_WEBHOOK_URL_<CHANNEL> setting get a webhook
    sender; the rest get a logging sender.
    """
    senders: Dict[str, ChannelSender] = {}
    for channel in CHANNELS:
        url = NOTIFICATION_WEBHOOK_URLS.get(channel)
        if url:
            senders[channel] = WebhookChannelSender(channel, url)
        else:
            senders[channel] = LoggingChannelSender(channel)
    return senders
