"""Tests for the on-ramp session ledger: creation, webhooks, expiry."""

import asyncio
import itertools
import json
from datetime import timedelta

import httpx
import pytest
from sqlalchemy import func, select

from swapgate.db.base import utcnow
from swapgate.db.models import OnrampSessionRow, WebhookRecordRow
from swapgate.errors.exceptions import InvalidInput, InvalidSignature, ServerMisconfigured, UpstreamError
from swapgate.models.session import CreateSessionRequest
from swapgate.services.ledger import sign_webhook

from conftest import WALLET, request_json

WEBHOOK_SECRET = "whsec-test"


def _request(**overrides) -> CreateSessionRequest:
    body = {
        "flow_type": "simple_full_restrict",
        "wallet_address": WALLET,
        "currency": "USD",
        "commodity": "ETH",
        "network": "ethereum",
        "currency_amount": 100,
    }
    body.update(overrides)
    return CreateSessionRequest.model_validate(body)


@pytest.fixture
def minting_provider(upstream):
    """Wert answers each create with a fresh session id."""
    counter = itertools.count(1)
    upstream.on(
        "wert.test",
        lambda request: httpx.Response(200, json={"sessionId": f"ws_{next(counter)}"}),
    )
    return upstream


async def _count(session_factory, model, **filters) -> int:
    async with session_factory() as db:
        stmt = select(func.count()).select_from(model)
        for field, value in filters.items():
            stmt = stmt.where(getattr(model, field) == value)
        return (await db.execute(stmt)).scalar_one()


async def _status(session_factory, session_id: str) -> str:
    async with session_factory() as db:
        row = (
            await db.execute(select(OnrampSessionRow).where(OnrampSessionRow.session_id == session_id))
        ).scalar_one()
        return row.status


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "wallet",
    [
        None,
        "",
        "0x" + "a" * 39,
        "0x" + "a" * 41,
        "aa" + "a" * 40,
        "0x" + "g" * 40,
        "0X" + "a" * 40,
        " 0x" + "a" * 39,
    ],
)
async def test_create_rejects_malformed_wallet(ledger, minting_provider, wallet):
    with pytest.raises(InvalidInput):
        await ledger.create_session(_request(wallet_address=wallet))
    assert minting_provider.requests == []


@pytest.mark.parametrize("wallet", ["0x" + "a" * 40, "0x" + "0123456789abcdefABCDEF0123456789abcdef01"])
async def test_create_accepts_well_formed_wallet(ledger, minting_provider, wallet):
    result = await ledger.create_session(_request(wallet_address=wallet))
    assert result.session_id.startswith("ws_")


@pytest.mark.parametrize("missing", ["currency", "commodity", "network"])
async def test_create_requires_fields(ledger, minting_provider, missing):
    with pytest.raises(InvalidInput) as exc_info:
        await ledger.create_session(_request(**{missing: None}))
    assert exc_info.value.details == {"missing": [missing]}


async def test_create_persists_created_session(ledger, minting_provider, session_factory):
    result = await ledger.create_session(_request())
    assert result.session_id == "ws_1"
    assert result.created is True

    async with session_factory() as db:
        row = (await db.execute(select(OnrampSessionRow))).scalar_one()
    assert row.status == "created"
    assert row.wallet_address == WALLET
    assert row.env == "sandbox"
    assert row.meta == {"flow_type": "simple_full_restrict"}


async def test_create_forwards_payload_with_partner_id(ledger, minting_provider):
    await ledger.create_session(_request(extra_field="kept"), idempotency_key="idem-x")
    sent = minting_provider.calls_to("wert.test")[0]
    body = request_json(sent)
    assert body["partner_id"] == "partner-01"
    assert body["extra_field"] == "kept"
    assert "idempotencyKey" not in body and "idempotency_key" not in body
    assert sent.headers["authorization"] == "Bearer wert-key"


async def test_same_idempotency_key_yields_same_session(ledger, minting_provider, session_factory):
    first = await ledger.create_session(_request(), idempotency_key="idem-1")
    second = await ledger.create_session(_request(), idempotency_key="idem-1")

    assert first.session_id == second.session_id
    assert second.created is False
    assert len(minting_provider.calls_to("wert.test")) == 1
    assert await _count(session_factory, OnrampSessionRow, idempotency_key="idem-1") == 1


async def test_concurrent_creates_with_same_key_converge(ledger, minting_provider, session_factory):
    results = await asyncio.gather(
        ledger.create_session(_request(), idempotency_key="idem-race"),
        ledger.create_session(_request(), idempotency_key="idem-race"),
    )
    assert results[0].session_id == results[1].session_id
    assert await _count(session_factory, OnrampSessionRow, idempotency_key="idem-race") == 1


async def test_creates_without_key_are_independent(ledger, minting_provider, session_factory):
    a = await ledger.create_session(_request())
    b = await ledger.create_session(_request())
    assert a.session_id != b.session_id
    assert await _count(session_factory, OnrampSessionRow) == 2


async def test_upstream_non_2xx_persists_nothing(ledger, upstream, session_factory):
    upstream.json("wert.test", {"error": "bad partner"}, status_code=403)
    with pytest.raises(UpstreamError) as exc_info:
        await ledger.create_session(_request(), idempotency_key="idem-fail")
    assert exc_info.value.details["status"] == 403
    assert await _count(session_factory, OnrampSessionRow) == 0


async def test_upstream_without_session_id_persists_nothing(ledger, upstream, session_factory):
    upstream.json("wert.test", {"ok": True})
    with pytest.raises(UpstreamError):
        await ledger.create_session(_request())
    assert await _count(session_factory, OnrampSessionRow) == 0


async def test_upstream_transport_failure_is_upstream_error(ledger, upstream, session_factory):
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    upstream.on("wert.test", boom)
    with pytest.raises(UpstreamError):
        await ledger.create_session(_request())
    assert await _count(session_factory, OnrampSessionRow) == 0


async def test_alternate_session_id_keys_accepted(ledger, upstream):
    upstream.json("wert.test", {"session_id": "ws_snake"})
    assert (await ledger.create_session(_request())).session_id == "ws_snake"
    upstream.json("wert.test", {"id": "ws_plain"})
    assert (await ledger.create_session(_request())).session_id == "ws_plain"


async def test_missing_provider_url_is_misconfiguration(ledger, minting_provider):
    ledger.provider.create_session_url = ""
    with pytest.raises(ServerMisconfigured):
        await ledger.create_session(_request())


async def test_x_api_key_auth_scheme(ledger, minting_provider):
    ledger.provider.auth_scheme = "x-api-key"
    await ledger.create_session(_request())
    sent = minting_provider.calls_to("wert.test")[0]
    assert sent.headers["x-api-key"] == "wert-key"
    assert "authorization" not in sent.headers


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


def _webhook(session_id: str, status: str | None = "success", event: str = "payment_update") -> bytes:
    body = {"type": event, "session_id": session_id}
    if status:
        body["status"] = status
    return json.dumps(body).encode()


@pytest.fixture
def signed_ledger(ledger):
    ledger.webhook_secret = WEBHOOK_SECRET
    return ledger


async def test_signed_webhook_updates_status(signed_ledger, minting_provider, session_factory):
    created = await signed_ledger.create_session(_request())
    raw = _webhook(created.session_id, "success")

    ack = await signed_ledger.record_webhook(raw, sign_webhook(WEBHOOK_SECRET, raw))

    assert ack.applied is True
    assert await _status(session_factory, created.session_id) == "success"
    assert await _count(session_factory, WebhookRecordRow) == 1
    await signed_ledger.drain()


async def test_flipped_signature_rejected_without_side_effects(signed_ledger, minting_provider, session_factory):
    created = await signed_ledger.create_session(_request())
    raw = _webhook(created.session_id, "success")
    good = sign_webhook(WEBHOOK_SECRET, raw)
    flipped = ("0" if good[0] != "0" else "1") + good[1:]

    with pytest.raises(InvalidSignature):
        await signed_ledger.record_webhook(raw, flipped)

    assert await _status(session_factory, created.session_id) == "created"
    assert await _count(session_factory, WebhookRecordRow) == 0


async def test_missing_signature_rejected_when_secret_set(signed_ledger):
    with pytest.raises(InvalidSignature):
        await signed_ledger.record_webhook(_webhook("ws_1"), None)


async def test_unsigned_webhook_accepted_without_secret(ledger, minting_provider, session_factory):
    created = await ledger.create_session(_request())
    ack = await ledger.record_webhook(_webhook(created.session_id, "failed"), None)
    assert ack.applied is True
    assert await _status(session_factory, created.session_id) == "failed"


async def test_webhook_for_unknown_session_is_recorded_only(ledger, session_factory):
    ack = await ledger.record_webhook(_webhook("ws_ghost", "success"))
    assert ack.ok is True
    assert ack.applied is False
    assert await _count(session_factory, WebhookRecordRow, session_id="ws_ghost") == 1
    assert await _count(session_factory, OnrampSessionRow) == 0


async def test_webhook_without_status_is_recorded_only(ledger, minting_provider, session_factory):
    created = await ledger.create_session(_request())
    ack = await ledger.record_webhook(_webhook(created.session_id, status=None, event="order_created"))
    assert ack.applied is False
    assert await _status(session_factory, created.session_id) == "created"
    assert await _count(session_factory, WebhookRecordRow) == 1


async def test_webhook_reads_nested_session_fields(ledger, minting_provider, session_factory):
    created = await ledger.create_session(_request())
    raw = json.dumps({"event": "update", "session": {"id": created.session_id, "status": "Pending"}}).encode()
    ack = await ledger.record_webhook(raw)
    assert ack.event_type == "update"
    assert await _status(session_factory, created.session_id) == "pending"


async def test_webhook_invalid_json_rejected(ledger):
    with pytest.raises(InvalidInput):
        await ledger.record_webhook(b"{not json")


async def test_non_terminal_state_can_advance(ledger, minting_provider, session_factory):
    created = await ledger.create_session(_request())
    await ledger.record_webhook(_webhook(created.session_id, "pending"))
    await ledger.record_webhook(_webhook(created.session_id, "failed"))
    assert await _status(session_factory, created.session_id) == "failed"


async def test_terminal_state_is_final(ledger, minting_provider, session_factory):
    created = await ledger.create_session(_request())
    await ledger.record_webhook(_webhook(created.session_id, "failed"))
    ack = await ledger.record_webhook(_webhook(created.session_id, "success"))

    assert ack.applied is False
    assert await _status(session_factory, created.session_id) == "failed"
    assert await _count(session_factory, WebhookRecordRow, session_id=created.session_id) == 2


async def test_resent_terminal_status_is_idempotent(ledger, minting_provider, session_factory):
    created = await ledger.create_session(_request())
    await ledger.record_webhook(_webhook(created.session_id, "success"))
    ack = await ledger.record_webhook(_webhook(created.session_id, "success"))
    assert ack.applied is True
    assert await _status(session_factory, created.session_id) == "success"
    await ledger.drain()


# ---------------------------------------------------------------------------
# Expiry sweep
# ---------------------------------------------------------------------------


async def test_expiry_sweep_expires_only_stale_created(ledger, minting_provider, session_factory):
    stale = await ledger.create_session(_request())
    finished = await ledger.create_session(_request())
    await ledger.record_webhook(_webhook(finished.session_id, "failed"))

    expired = await ledger.expiry_sweep(utcnow() + timedelta(hours=25))

    assert expired == 1
    assert await _status(session_factory, stale.session_id) == "expired"
    assert await _status(session_factory, finished.session_id) == "failed"


async def test_expiry_sweep_leaves_recent_sessions(ledger, minting_provider, session_factory):
    fresh = await ledger.create_session(_request())
    assert await ledger.expiry_sweep(utcnow() + timedelta(hours=23)) == 0
    assert await _status(session_factory, fresh.session_id) == "created"


async def test_webhook_cannot_revive_expired_session(ledger, minting_provider, session_factory):
    created = await ledger.create_session(_request())
    await ledger.expiry_sweep(utcnow() + timedelta(hours=25))
    ack = await ledger.record_webhook(_webhook(created.session_id, "success"))
    assert ack.applied is False
    assert await _status(session_factory, created.session_id) == "expired"


async def test_purge_webhooks_respects_retention(ledger, session_factory):
    await ledger.record_webhook(_webhook("ws_old", "success"))
    assert await ledger.purge_webhooks(utcnow() + timedelta(days=59)) == 0
    assert await ledger.purge_webhooks(utcnow() + timedelta(days=61)) == 1
    assert await _count(session_factory, WebhookRecordRow) == 0


# ---------------------------------------------------------------------------
# Completion notifications
# ---------------------------------------------------------------------------


async def _register(app, wallet: str, external_user_id: str) -> None:
    from swapgate.models.device import RegisterDeviceRequest

    await app.state.notifications.register_device(
        RegisterDeviceRequest(wallet_address=wallet, external_user_id=external_user_id, platform="ios")
    )


async def test_success_webhook_pushes_once_to_latest_device(app, ledger, minting_provider):
    minting_provider.json("onesignal.test", {"id": "notif-1"})
    await _register(app, WALLET, "ext-0")
    await _register(app, WALLET, "ext-1")
    created = await ledger.create_session(_request())

    await ledger.record_webhook(_webhook(created.session_id, "success"))
    await ledger.record_webhook(_webhook(created.session_id, "success"))
    await ledger.drain()

    pushes = minting_provider.calls_to("onesignal.test")
    assert len(pushes) == 1
    body = request_json(pushes[0])
    assert body["app_id"] == "os-app"
    assert body["include_aliases"] == {"external_id": ["ext-1"]}
    assert pushes[0].headers["authorization"] == "Basic os-key"


async def test_failed_status_sends_no_push(app, ledger, minting_provider):
    minting_provider.json("onesignal.test", {"id": "notif-1"})
    await _register(app, WALLET, "ext-1")
    created = await ledger.create_session(_request())

    await ledger.record_webhook(_webhook(created.session_id, "failed"))
    await ledger.drain()

    assert minting_provider.calls_to("onesignal.test") == []


async def test_push_failure_does_not_fail_webhook(app, ledger, minting_provider, session_factory):
    minting_provider.json("onesignal.test", {"errors": ["bad key"]}, status_code=400)
    await _register(app, WALLET, "ext-1")
    created = await ledger.create_session(_request())

    ack = await ledger.record_webhook(_webhook(created.session_id, "completed"))
    await ledger.drain()

    assert ack.applied is True
    assert await _status(session_factory, created.session_id) == "completed"
    assert len(minting_provider.calls_to("onesignal.test")) == 1


async def test_no_device_means_no_push(ledger, minting_provider):
    minting_provider.json("onesignal.test", {"id": "notif-1"})
    created = await ledger.create_session(_request())
    await ledger.record_webhook(_webhook(created.session_id, "success"))
    await ledger.drain()
    assert minting_provider.calls_to("onesignal.test") == []


# ---------------------------------------------------------------------------
# Field widths and raw forwarding
# ---------------------------------------------------------------------------


async def test_oversized_idempotency_key_rejected_before_provider(ledger, minting_provider, session_factory):
    with pytest.raises(InvalidInput) as exc_info:
        await ledger.create_session(_request(), idempotency_key="k" * 201)
    assert exc_info.value.details == {"field": "idempotency_key"}
    assert minting_provider.requests == []
    assert await _count(session_factory, OnrampSessionRow) == 0


async def test_idempotency_key_at_column_width_accepted(ledger, minting_provider):
    result = await ledger.create_session(_request(), idempotency_key="k" * 200)
    assert result.created is True


@pytest.mark.parametrize(
    "field,value",
    [("idempotencyKey", "k" * 201), ("currency", "U" * 21), ("commodity", "E" * 51), ("network", "n" * 51)],
)
def test_request_model_enforces_column_widths(field, value):
    from pydantic import ValidationError

    body = {"wallet_address": WALLET, "currency": "USD", "commodity": "ETH", "network": "ethereum", field: value}
    with pytest.raises(ValidationError):
        CreateSessionRequest.model_validate(body)


async def test_oversized_provider_session_id_persists_nothing(ledger, upstream, session_factory):
    upstream.json("wert.test", {"sessionId": "s" * 201})
    with pytest.raises(UpstreamError):
        await ledger.create_session(_request())
    assert await _count(session_factory, OnrampSessionRow) == 0


async def test_oversized_webhook_fields_are_clipped_and_recorded(ledger, minting_provider, session_factory):
    created = await ledger.create_session(_request())
    raw = json.dumps({"type": "t" * 500, "sessionId": created.session_id, "status": "x" * 80}).encode()

    ack = await ledger.record_webhook(raw)

    assert len(ack.event_type) == 100
    async with session_factory() as db:
        record = (await db.execute(select(WebhookRecordRow))).scalar_one()
    assert len(record.event_type) == 100
    assert record.payload["type"] == "t" * 500
    assert await _status(session_factory, created.session_id) == "x" * 50


async def test_client_amount_forwarded_as_sent(ledger, minting_provider, session_factory):
    await ledger.create_session(_request(currency_amount="100"))

    sent = request_json(minting_provider.calls_to("wert.test")[0])
    assert sent["currency_amount"] == "100"
    async with session_factory() as db:
        row = (await db.execute(select(OnrampSessionRow))).scalar_one()
    assert row.currency_amount == 100.0
