"""Tests for PersistenceGateway against an in-memory database."""

import pytest

from scribe.core.exceptions import InvalidStatusTransitionError, RecordingNotFoundError
from scribe.core.models import RecordingStatus
from scribe.services.storage.gateway import PersistenceGateway


@pytest.fixture
def gateway(use_test_db):
    return PersistenceGateway()


async def test_round_trip_preserves_results(gateway):
    created = await gateway.create_session(user_id="u1", title="Weekly sync")
    await gateway.update_session(created.id, status=RecordingStatus.PROCESSING)

    await gateway.update_session(
        created.id,
        status=RecordingStatus.COMPLETED,
        transcript="We agreed to ship on Friday.",
        summary="## Overview\nShip Friday.",
        duration=93,
    )
    reread = await gateway.get_session(created.id)

    assert reread.transcript == "We agreed to ship on Friday."
    assert reread.summary == "## Overview\nShip Friday."
    assert reread.duration == 93
    assert reread.status == "COMPLETED"


async def test_get_missing_returns_none(gateway):
    assert await gateway.get_session("missing") is None


async def test_update_missing_raises(gateway):
    with pytest.raises(RecordingNotFoundError):
        await gateway.update_session("missing", status=RecordingStatus.PAUSED)


async def test_invalid_transition_is_rolled_back(gateway):
    created = await gateway.create_session(user_id="u1", title="Call")

    with pytest.raises(InvalidStatusTransitionError):
        await gateway.update_session(created.id, status=RecordingStatus.COMPLETED, title="renamed")

    reread = await gateway.get_session(created.id)
    assert reread.status == "RECORDING"
    assert reread.title == "Call"


async def test_list_and_delete(gateway):
    a = await gateway.create_session(user_id="u1", title="A")
    await gateway.create_session(user_id="u1", title="B")
    await gateway.create_session(user_id="u2", title="C")

    recordings, total = await gateway.list_sessions("u1")
    assert total == 2
    assert {r.title for r in recordings} == {"A", "B"}

    await gateway.delete_session(a.id)

    assert await gateway.get_session(a.id) is None
    with pytest.raises(RecordingNotFoundError):
        await gateway.delete_session(a.id)
