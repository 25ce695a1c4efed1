"""
Twilio WhatsApp client.

Sends messages through the Twilio Messages REST API with HTTP basic auth.
Errors are classified for the retry logic in notifications.tasks:

    Transient (retry): HTTP 429, HTTP 5xx, timeouts, connection failures
    Permanent (give up): other HTTP 4xx, missing configuration

Usage:
    from notifications.clients import DeliveryError, WhatsAppClient

    try:
        sid = WhatsAppClient.send_message("+34600111222", "Hola")
    except DeliveryError as e:
        if e.is_permanent:
            ...
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from django.conf import settings

from core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


# Error codes
NOT_CONFIGURED = "not_configured"
RATE_LIMITED = "rate_limited"
PROVIDER_UNAVAILABLE = "provider_unavailable"
TIMEOUT = "timeout"
CONNECTION_ERROR = "connection_error"
INVALID_RECIPIENT = "invalid_recipient"


class DeliveryError(ExternalServiceError):
    """
    A WhatsApp message could not be handed to Twilio.

    Attributes:
        code: Machine-readable failure code (see module constants)
        is_permanent: True when retrying cannot succeed
    """

    default_error_code = "DELIVERY_FAILED"

    def __init__(self, message: str, code: str, is_permanent: bool = False, details=None):
        super().__init__(
            message,
            service_name="twilio",
            is_retryable=not is_permanent,
            details=details,
        )
        self.code = code
        self.is_permanent = is_permanent


def _whatsapp_address(number: str) -> str:
    return f"whatsapp:{number}"


class WhatsAppClient:
    """Thin wrapper over the Twilio Messages endpoint."""

    @staticmethod
    def _messages_url() -> str:
        base_url = settings.TWILIO_API_BASE_URL.rstrip("/")
        return f"{base_url}/Accounts/{settings.TWILIO_ACCOUNT_SID}/Messages.json"

    @classmethod
    def send_message(cls, to: str, body: str) -> str | None:
        """
        Send a WhatsApp message.

        Args:
            to: Destination in E.164 format
            body: Message text

        Returns:
            Twilio message SID

        Raises:
            DeliveryError: On any failure, classified as permanent or transient
        """
        if not (
            settings.TWILIO_ACCOUNT_SID
            and settings.TWILIO_AUTH_TOKEN
            and settings.TWILIO_WHATSAPP_NUMBER
        ):
            raise DeliveryError(
                "Twilio WhatsApp credentials are not configured",
                code=NOT_CONFIGURED,
                is_permanent=True,
            )

        start_time = time.time()
        try:
            response = requests.post(
                cls._messages_url(),
                data={
                    "From": _whatsapp_address(settings.TWILIO_WHATSAPP_NUMBER),
                    "To": _whatsapp_address(to),
                    "Body": body,
                },
                auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
                timeout=settings.TWILIO_API_TIMEOUT_SECONDS,
            )
        except requests.Timeout as e:
            raise DeliveryError("Twilio request timed out", code=TIMEOUT) from e
        except requests.RequestException as e:
            raise DeliveryError(f"Could not reach Twilio: {e}", code=CONNECTION_ERROR) from e

        duration_ms = (time.time() - start_time) * 1000
        data = cls._json(response)

        if response.status_code == 429:
            raise DeliveryError("Twilio rate limit exceeded", code=RATE_LIMITED)
        if response.status_code >= 500:
            raise DeliveryError(
                f"Twilio unavailable (HTTP {response.status_code})",
                code=PROVIDER_UNAVAILABLE,
            )
        if response.status_code >= 400:
            raise DeliveryError(
                data.get("message") or f"Twilio rejected the message (HTTP {response.status_code})",
                code=INVALID_RECIPIENT,
                is_permanent=True,
                details={"twilio_code": data.get("code"), "status": response.status_code},
            )

        logger.info(
            "WhatsApp message accepted by Twilio",
            extra={"message_sid": data.get("sid"), "duration_ms": round(duration_ms, 2)},
        )
        return data.get("sid")

    @staticmethod
    def _json(response: requests.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
