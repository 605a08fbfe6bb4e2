"""On-ramp session ledger.

Records session creation idempotently and reconciles it with webhook
deliveries from the provider. Status moves ``created`` to any provider
state through webhooks; ``created`` to ``expired`` happens only through
``expiry_sweep``. Terminal states are never left.
"""

import asyncio
import hashlib
import hmac
import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from swapgate.db.base import from_epoch_ms, to_epoch_ms, utcnow
from swapgate.db.models.session import IDEMPOTENCY_KEY_MAX, SESSION_ID_MAX, STATUS_MAX
from swapgate.db.models.webhook import EVENT_TYPE_MAX
from swapgate.errors.exceptions import InvalidInput, InvalidSignature, NotFoundError, UpstreamError
from swapgate.integrations.base import SessionProvider
from swapgate.models.enums import NOTIFY_STATUSES, TERMINAL_STATUSES, SessionStatus
from swapgate.models.session import (
    CreateSessionRequest,
    CreateSessionResponse,
    SessionDetail,
    SessionModel,
    SessionPage,
    WebhookAck,
    WebhookRecordModel,
)
from swapgate.repositories.session_repo import SessionRepository
from swapgate.repositories.webhook_repo import WebhookRecordRepository
from swapgate.services.notifications import NotificationService
from swapgate.services.validation import is_wallet_address

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
RECENT_WEBHOOKS = 20

_WEBHOOK_WRITE_ATTEMPTS = 3

NOTIFY_TITLE = "Top-up successful"


def sign_webhook(secret: str, raw_body: bytes) -> str:
    """Hex HMAC-SHA256 of the raw webhook body."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def _extract_webhook_fields(body: Any) -> tuple[str | None, str, str | None]:
    """Pull (session_id, event_type, status) out of a provider payload.

    Values are clipped to their column widths so the audit write cannot
    fail on an oversized field.
    """
    if not isinstance(body, dict):
        return None, "unknown", None
    session = body.get("session") if isinstance(body.get("session"), dict) else {}
    session_id = body.get("sessionId") or body.get("session_id") or session.get("id")
    event_type = body.get("type") or body.get("event") or "unknown"
    status = body.get("status") or session.get("status")
    return (
        str(session_id)[:SESSION_ID_MAX] if session_id else None,
        str(event_type)[:EVENT_TYPE_MAX],
        str(status).lower()[:STATUS_MAX] if status else None,
    )


class SessionLedger:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        provider: SessionProvider,
        notifications: NotificationService | None = None,
        env: str = "sandbox",
        webhook_secret: str = "",
        pending_expiry: timedelta = timedelta(hours=24),
        retention: timedelta = timedelta(days=60),
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self.provider = provider
        self.notifications = notifications
        self.env = env
        self.webhook_secret = webhook_secret
        self.pending_expiry = pending_expiry
        self.retention = retention
        self._clock = clock
        self._side_tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_session(
        self, request: CreateSessionRequest, idempotency_key: str | None = None
    ) -> CreateSessionResponse:
        """Create a session, or return the one already stored for the key.

        Nothing is persisted unless the provider returned a session id.
        """
        if not is_wallet_address(request.wallet_address):
            raise InvalidInput("Invalid wallet address", {"field": "wallet_address"})
        missing = [f for f in ("currency", "commodity", "network") if not getattr(request, f)]
        if missing:
            raise InvalidInput("Missing required fields", {"missing": missing})

        key = idempotency_key or request.idempotency_key or None
        if key and len(key) > IDEMPOTENCY_KEY_MAX:
            raise InvalidInput(
                f"Idempotency key longer than {IDEMPOTENCY_KEY_MAX} characters",
                {"field": "idempotency_key"},
            )
        if key:
            async with self._session_factory() as db:
                existing = await SessionRepository(db).get_by_idempotency_key(key)
            if existing is not None:
                logger.info("Idempotent replay for key %s -> %s", key, existing.session_id)
                return CreateSessionResponse(session_id=existing.session_id, created=False)

        session_id = await self.provider.create_session(request.provider_payload())
        if len(session_id) > SESSION_ID_MAX:
            raise UpstreamError("Session provider returned an oversized session id")

        async with self._session_factory() as db:
            row, created = await SessionRepository(db).insert_or_get(
                session_id=session_id,
                idempotency_key=key,
                wallet_address=request.wallet_address,
                env=self.env,
                commodity=request.commodity,
                currency=request.currency,
                currency_amount=request.currency_amount,
                network=request.network,
                status=SessionStatus.CREATED.value,
                meta={"flow_type": request.flow_type},
            )
        if created:
            logger.info("Session %s created for %s", session_id, request.wallet_address)
        else:
            logger.info(
                "Concurrent create converged on %s (minted %s discarded)",
                row.session_id,
                session_id,
            )
        return CreateSessionResponse(session_id=row.session_id, created=created)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_sessions(
        self, wallet_address: str, limit: int | None = None, cursor: int | None = None
    ) -> SessionPage:
        """Newest-first page of a wallet's sessions created before ``cursor`` (epoch ms)."""
        if not is_wallet_address(wallet_address):
            raise InvalidInput("Invalid wallet address", {"field": "wallet"})
        limit = max(1, min(MAX_PAGE_SIZE, limit or DEFAULT_PAGE_SIZE))
        before = None
        if cursor is not None:
            try:
                before = from_epoch_ms(cursor)
            except OverflowError as exc:
                raise InvalidInput("Invalid cursor", {"field": "cursor"}) from exc

        async with self._session_factory() as db:
            rows = await SessionRepository(db).list_by_wallet(wallet_address, limit, before)

        return SessionPage(
            sessions=[SessionModel.model_validate(r) for r in rows],
            next_cursor=to_epoch_ms(rows[-1].created_at) if rows else None,
        )

    async def get_session(self, session_id: str) -> SessionDetail:
        async with self._session_factory() as db:
            row = await SessionRepository(db).get(session_id)
            if row is None:
                raise NotFoundError("Session", session_id)
            hooks = await WebhookRecordRepository(db).list_recent(session_id, RECENT_WEBHOOKS)
        return SessionDetail(
            session=SessionModel.model_validate(row),
            webhooks=[WebhookRecordModel.model_validate(h) for h in hooks],
        )

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def verify_webhook_signature(self, raw_body: bytes, signature: str | None) -> None:
        if not self.webhook_secret:
            return
        expected = sign_webhook(self.webhook_secret, raw_body)
        if not signature or not hmac.compare_digest(
            expected.encode("ascii"), signature.encode("latin-1", "replace")
        ):
            raise InvalidSignature()

    async def record_webhook(self, raw_body: bytes, signature: str | None = None) -> WebhookAck:
        """Audit a webhook delivery and apply its status, if it carries one.

        The signature is checked first; a rejected delivery is not recorded.
        Unknown sessions are recorded but change nothing.
        """
        self.verify_webhook_signature(raw_body, signature)
        try:
            body = json.loads(raw_body or b"{}")
        except ValueError as exc:
            raise InvalidInput("Webhook body is not valid JSON") from exc

        session_id, event_type, status = _extract_webhook_fields(body)
        await self._append_webhook(session_id, event_type, body)

        ack = WebhookAck(session_id=session_id, event_type=event_type)
        if not (session_id and status):
            return ack

        async with self._session_factory() as db:
            repo = SessionRepository(db)
            row = await repo.get(session_id)
            if row is None:
                logger.warning(
                    "orphan_webhook",
                    extra={"session_id": session_id, "event_type": event_type, "status": status},
                )
                return ack
            wallet_address = row.wallet_address
            current = row.status

            if current == status:
                ack.applied = True
                return ack
            if current in TERMINAL_STATUSES:
                logger.info(
                    "Ignoring %s for session %s already in terminal state %s",
                    status,
                    session_id,
                    current,
                )
                return ack

            changed = await repo.set_status(session_id, status, unless_in=TERMINAL_STATUSES)
            await db.commit()

        ack.applied = changed > 0
        if ack.applied:
            logger.info("Session %s: %s -> %s", session_id, current, status)
            if status in NOTIFY_STATUSES:
                self._spawn(self._notify_completion(session_id, wallet_address))
        return ack

    async def _append_webhook(self, session_id: str | None, event_type: str, body: Any) -> None:
        """Write the audit record, retrying storage failures before giving up loudly."""
        last_exc: SQLAlchemyError | None = None
        for attempt in range(1, _WEBHOOK_WRITE_ATTEMPTS + 1):
            try:
                async with self._session_factory() as db:
                    await WebhookRecordRepository(db).create(
                        session_id=session_id,
                        event_type=event_type,
                        payload=body,
                        received_at=self._clock(),
                    )
                    await db.commit()
                return
            except SQLAlchemyError as exc:
                last_exc = exc
                logger.warning(
                    "Webhook audit write failed (attempt %d/%d): %s",
                    attempt,
                    _WEBHOOK_WRITE_ATTEMPTS,
                    exc,
                )
        logger.error(
            "webhook_dropped",
            extra={"session_id": session_id, "event_type": event_type, "payload": body},
        )
        raise last_exc

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._side_tasks.add(task)
        task.add_done_callback(self._side_tasks.discard)

    async def _notify_completion(self, session_id: str, wallet_address: str) -> None:
        if self.notifications is None:
            return
        try:
            delivered = await self.notifications.notify_wallet(
                wallet_address, NOTIFY_TITLE, f"Session {session_id} completed"
            )
            logger.info("Completion notification for %s delivered=%s", session_id, delivered)
        except Exception:
            # The webhook was already acknowledged; a failed push is only logged.
            logger.exception("Completion notification for %s failed", session_id)

    async def drain(self) -> None:
        """Wait for outstanding notification tasks."""
        if self._side_tasks:
            await asyncio.gather(*list(self._side_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def expiry_sweep(self, now: datetime | None = None) -> int:
        """Expire sessions still ``created`` after the pending window."""
        cutoff = (now or self._clock()) - self.pending_expiry
        async with self._session_factory() as db:
            expired = await SessionRepository(db).expire_pending(cutoff)
            await db.commit()
        if expired:
            logger.info("Expired %d pending sessions", expired)
        return expired

    async def purge_webhooks(self, now: datetime | None = None) -> int:
        """Delete webhook audit records older than the retention horizon."""
        cutoff = (now or self._clock()) - self.retention
        async with self._session_factory() as db:
            deleted = await WebhookRecordRepository(db).purge_before(cutoff)
            await db.commit()
        return deleted
