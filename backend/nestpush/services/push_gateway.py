"""Push gateway client - sends one message per token through FCM."""
import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

# Gateway error codes meaning the token itself is dead
PERMANENT_ERRORS = {
    "InvalidRegistration",
    "NotRegistered",
    "MissingRegistration",
    "MismatchSenderId",
    "UNREGISTERED",
    "registration-token-not-registered",
    "invalid-registration-token",
}


class Outcome(str, enum.Enum):
    """Classification of a single send."""
    SUCCESS = "success"
    TRANSIENT = "transient"  # Incidental to this attempt; token stays active
    PERMANENT = "permanent"  # Token is invalid; future sends are futile


@dataclass
class GatewayResult:
    """Result of sending to one token."""
    outcome: Outcome
    message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    @property
    def token_invalid(self) -> bool:
        return self.outcome == Outcome.PERMANENT


@dataclass
class PushConfig:
    """FCM configuration."""
    server_key: str = ""
    endpoint: str = "https://fcm.googleapis.com/fcm/send"
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.server_key)


class PushGateway(ABC):
    """Abstract interface for push delivery adapters."""

    @abstractmethod
    async def send(self, token: str, message: dict) -> GatewayResult:
        """Send one message to one token. Never raises for delivery failures."""

    async def aclose(self):
        """Release network resources."""


def _error_code(body: Any) -> Optional[str]:
    """Pull the gateway error code out of a response body."""
    if not isinstance(body, dict):
        return None

    results = body.get("results")
    if isinstance(results, list) and results:
        first = results[0]
        if isinstance(first, dict) and first.get("error"):
            return str(first["error"])

    error = body.get("error")
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        # HTTP v1 style: {"error": {"status": ..., "details": [{"errorCode": ...}]}}
        for detail in error.get("details") or []:
            if isinstance(detail, dict) and detail.get("errorCode"):
                return str(detail["errorCode"])
        return error.get("status") or error.get("message")
    return None


def classify_response(status_code: int, body: Any) -> GatewayResult:
    """Map an FCM HTTP response to a per-token outcome."""
    if status_code >= 500:
        return GatewayResult(Outcome.TRANSIENT, error=f"Gateway error HTTP {status_code}")

    code = _error_code(body)

    if status_code == 200 and not code:
        message_id = None
        if isinstance(body, dict):
            results = body.get("results") or []
            if results and isinstance(results[0], dict):
                message_id = results[0].get("message_id")
            message_id = message_id or body.get("message_id") or body.get("name")
        return GatewayResult(Outcome.SUCCESS, message_id=message_id)

    if code in PERMANENT_ERRORS:
        return GatewayResult(Outcome.PERMANENT, error=code)

    return GatewayResult(Outcome.TRANSIENT, error=code or f"Gateway rejected request HTTP {status_code}")


class FcmGateway(PushGateway):
    """Service for sending push notifications via the FCM HTTP API."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client: Optional[httpx.AsyncClient] = None
        self._config: Optional[PushConfig] = None
        self._transport = transport

    async def configure(self, config: PushConfig):
        """Configure the FCM client, closing any previous one."""
        self._config = config
        await self.aclose()  # Reset client to force reconnection

        if not config.enabled:
            logger.warning("FCM server key not configured - push sends will fail")
            return

        self._client = httpx.AsyncClient(
            timeout=config.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"key={config.server_key}",
                "Content-Type": "application/json",
            },
        )
        logger.info(f"FCM client configured (endpoint={config.endpoint})")

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def send(self, token: str, message: dict) -> GatewayResult:
        """Send a push notification to a single token.

        Args:
            token: The FCM registration token
            message: notification/data/webpush blocks; "to" is added here

        Returns:
            GatewayResult classifying the outcome
        """
        if not self._client or not self._config:
            logger.debug("Push gateway not configured, skipping")
            return GatewayResult(Outcome.TRANSIENT, error="Push gateway not configured")

        payload = dict(message)
        payload["to"] = token

        try:
            response = await self._client.post(self._config.endpoint, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"Push request failed for {token[:16]}...: {type(e).__name__}: {e}")
            return GatewayResult(Outcome.TRANSIENT, error=f"{type(e).__name__}: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None

        result = classify_response(response.status_code, body)
        if result.success:
            logger.info(f"Push notification sent to {token[:16]}...")
        else:
            logger.warning(
                f"Push notification failed: {result.error} "
                f"({result.outcome.value}, token: {token[:16]}...)"
            )
        return result

    async def aclose(self):
        if self._client:
            await self._client.aclose()
            self._client = None


# Global instance
push_gateway = FcmGateway()


def get_push_gateway() -> PushGateway:
    """Dependency returning the configured gateway."""
    return push_gateway
