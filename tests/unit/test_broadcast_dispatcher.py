from __future__ import annotations

import asyncio

import pytest

from chat_client.application.dto.broadcast import BroadcastResult
from chat_client.application.exceptions import ConflictError, ForbiddenError, ValidationError
from chat_client.services.broadcast_dispatcher import BroadcastDispatcher
from tests.conftest import FakeChatApi


@pytest.mark.asyncio
async def test_partial_broadcast_reports_counts(faculty):
    api = FakeChatApi(broadcast_result=BroadcastResult(success_count=9, total_students=12))
    dispatcher = BroadcastDispatcher(api)

    result = await dispatcher.broadcast(faculty, "Exam moved to Friday")

    assert api.broadcasts == [("Exam moved to Friday", "text")]
    assert result.is_partial is True
    assert result.summary == "sent to 9 out of 12"


@pytest.mark.asyncio
async def test_full_broadcast(faculty):
    dispatcher = BroadcastDispatcher(FakeChatApi())

    result = await dispatcher.broadcast(faculty, "Lab is open")

    assert result.is_partial is False
    assert result.summary == "sent to 12 out of 12"


@pytest.mark.asyncio
async def test_students_cannot_broadcast(student):
    api = FakeChatApi()

    with pytest.raises(ForbiddenError):
        await BroadcastDispatcher(api).broadcast(student, "hi all")
    assert api.broadcasts == []


@pytest.mark.asyncio
async def test_blank_broadcast_rejected(faculty):
    with pytest.raises(ValidationError):
        await BroadcastDispatcher(FakeChatApi()).broadcast(faculty, "  ")


@pytest.mark.asyncio
async def test_one_broadcast_in_flight_at_a_time(faculty):
    api = FakeChatApi(hold=asyncio.Event())
    dispatcher = BroadcastDispatcher(api)

    first = asyncio.ensure_future(dispatcher.broadcast(faculty, "first"))
    await asyncio.sleep(0)
    assert dispatcher.in_flight

    with pytest.raises(ConflictError):
        await dispatcher.broadcast(faculty, "second")

    api.hold.set()
    await first
    assert not dispatcher.in_flight
    assert api.broadcasts == [("first", "text")]
