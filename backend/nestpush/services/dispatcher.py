"""Delivery dispatcher - fan a notification out to every recipient token.

One dispatch resolves the token set, sends to every token concurrently and
records each outcome as soon as it is known:

- success: token's last_used_at is refreshed
- transient failure (network, 5xx, gateway misconfigured): logged only
- permanent failure (token unregistered/invalid): token is deactivated

Every attempt appends a history row in its own session, so outcomes already
recorded survive if the dispatch is interrupted. Nothing is retried here;
the next event (or a manual resend) is the retry.
"""
import asyncio
import json
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import settings
from ..errors import DispatchValidationError
from ..schemas.push import (
    DispatchRequest,
    DispatchResponse,
    DispatchSummary,
    NotificationContent,
    TokenResult,
)
from .history import history_store
from .preference_store import normalize_category, preference_store
from .push_gateway import GatewayResult, Outcome, PushGateway
from .token_store import token_store

logger = logging.getLogger(__name__)

DEFAULT_ACTIONS = [
    {"action": "open", "title": "Open App"},
    {"action": "dismiss", "title": "Dismiss"},
]


def _related_id(data: dict) -> Optional[str]:
    for key in ("relatedId", "taskId", "announcementId", "related_id"):
        if data.get(key):
            return str(data[key])
    return None


def _category(data: dict) -> str:
    return normalize_category(data.get("category") or data.get("type") or data.get("taskType"))


def build_message(notification: NotificationContent, data: dict, category: str) -> dict:
    """Gateway message for one notification; the gateway adds the token.

    The tag is derived from the related entity so a later update to the same
    task replaces the shown notification instead of stacking another.
    """
    related_id = _related_id(data)
    url = str(data.get("url") or settings.default_click_url)
    icon = notification.icon or settings.default_icon
    badge = notification.badge or settings.default_badge
    if notification.tag:
        tag = notification.tag
    elif related_id:
        tag = f"{category}-{related_id}"
    else:
        tag = settings.default_tag
    require_interaction = bool(notification.require_interaction)

    if notification.actions:
        actions = [a.model_dump(exclude_none=True) for a in notification.actions]
    else:
        actions = [dict(a, icon=icon) for a in DEFAULT_ACTIONS]

    # Data values must be strings for the gateway; others travel as JSON
    payload_data = {k: v if isinstance(v, str) else json.dumps(v) for k, v in data.items() if v is not None}
    payload_data.update({
        "category": category,
        "relatedId": related_id or "",
        "url": url,
        "click_action": url,
    })

    visible = {
        "title": notification.title,
        "body": notification.body,
        "icon": icon,
        "badge": badge,
        "tag": tag,
        "requireInteraction": require_interaction,
    }
    return {
        "notification": visible,
        "data": payload_data,
        "webpush": {
            "headers": {"TTL": str(settings.push_ttl_seconds), "Urgency": "high"},
            "notification": dict(visible, actions=actions),
            "fcm_options": {"link": url},
        },
    }


def validate_request(request: DispatchRequest) -> NotificationContent:
    """Reject requests that cannot be delivered. No side effects."""
    notification = request.notification
    if not notification or not notification.title or not notification.body:
        raise DispatchValidationError("Notification title and body are required")
    if request.user_ids is None and request.tokens is None:
        raise DispatchValidationError("Either userIds or tokens must be provided")
    return notification


class Dispatcher:
    """Stateless fan-out of one notification to many tokens."""

    def __init__(self, gateway: PushGateway, session_factory: async_sessionmaker):
        self.gateway = gateway
        self.session_factory = session_factory

    async def _resolve_targets(
        self,
        session: AsyncSession,
        request: DispatchRequest,
        category: str,
    ) -> List[Tuple[str, Optional[str]]]:
        """(token, owner user id) pairs to send to, without duplicates."""
        targets: Dict[str, Optional[str]] = {}

        if request.user_ids:
            tokens = await token_store.list_active_for_users(session, request.user_ids)
            allowed = await preference_store.filter_allowed(session, {t.user_id for t in tokens}, category)
            for record in tokens:
                if record.user_id in allowed and record.token not in targets:
                    targets[record.token] = record.user_id
            logger.info(
                f"Found {len(targets)} active token(s) for {len(request.user_ids)} user(s) "
                f"({len(tokens) - len(targets)} filtered by preferences)"
            )
        elif request.tokens:
            # Direct sends bypass preferences
            direct = [t for t in dict.fromkeys(request.tokens) if t]
            owners = await token_store.owners_of(session, direct)
            for token in direct:
                targets[token] = owners.get(token)
            logger.info(f"Using {len(targets)} provided token(s)")

        return list(targets.items())

    async def _deliver(
        self,
        token: str,
        user_id: Optional[str],
        message: dict,
        notification: NotificationContent,
        category: str,
        related_id: Optional[str],
        data: dict,
    ) -> TokenResult:
        """Send to one token and record the outcome in its own session."""
        try:
            result = await self.gateway.send(token, message)
        except Exception as e:
            logger.error(f"Unexpected gateway error for {token[:16]}...: {type(e).__name__}: {e}")
            result = GatewayResult(Outcome.TRANSIENT, error=f"{type(e).__name__}: {e}")

        async with self.session_factory() as session:
            if result.token_invalid:
                logger.info(f"Marking invalid token as inactive: {token[:16]}...")
                await token_store.deactivate(session, token)
            elif result.success:
                await token_store.touch(session, token)

            await history_store.record(
                session,
                user_id=user_id,
                title=notification.title,
                body=notification.body,
                notification_type=category if category != "email" else "system",
                token=token,
                status="sent" if result.success else "failed",
                related_id=related_id,
                data=data,
                error_message=result.error,
            )

        return TokenResult(
            success=result.success,
            status="sent" if result.success else "failed",
            error=result.error,
            token_invalid=result.token_invalid,
            user_id=user_id,
        )

    async def dispatch(self, session: AsyncSession, request: DispatchRequest) -> DispatchResponse:
        """Validate, resolve tokens, send concurrently and aggregate.

        Raises:
            DispatchValidationError: malformed request, nothing was sent
            StorageError: a store failed; outcomes recorded before it are kept
        """
        notification = validate_request(request)
        data = dict(request.data or {})
        category = _category(data)
        requested_users = len(request.user_ids or [])

        targets = await self._resolve_targets(session, request, category)
        if not targets:
            logger.info("No tokens found, returning success with zero sends")
            return DispatchResponse(
                message="No active tokens found for the specified recipients",
                summary=DispatchSummary(user_ids=requested_users),
            )

        message = build_message(notification, data, category)
        related_id = _related_id(data)
        logger.info(f"Sending '{notification.title}' to {len(targets)} token(s)")

        outcomes = await asyncio.gather(
            *[
                self._deliver(token, user_id, message, notification, category, related_id, data)
                for token, user_id in targets
            ],
            return_exceptions=True,
        )

        results: Dict[str, TokenResult] = {}
        failure: Optional[BaseException] = None
        for (token, _), outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                failure = failure or outcome
                continue
            results[token] = outcome

        if failure is not None:
            logger.error(f"Dispatch aborted after {len(results)} recorded outcome(s): {failure}")
            raise failure

        successful = sum(1 for r in results.values() if r.success)
        summary = DispatchSummary(
            total=len(targets),
            successful=successful,
            failed=len(targets) - successful,
            user_ids=requested_users,
        )
        logger.info(f"Push send summary: {summary.successful} sent, {summary.failed} failed of {summary.total}")
        return DispatchResponse(summary=summary, results=results)
