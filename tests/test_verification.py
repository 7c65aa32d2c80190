import asyncio
import uuid

import pytest

from app.core.exceptions import BackendUnavailable, RecordNotFound
from app.db.realtime import RealtimeHub, RowChange
from app.schemas.verification_schema import VerificationStatus
from app.services.verification_service import BoardSession, VerificationService, group_by_status
from tests.conftest import FakeVerificationRepo, Recorder, make_verification


@pytest.fixture
def board_service(user_repo, users):
    records = [
        make_verification(1, users[0].id, "pending", minutes=1),
        make_verification(2, users[1].id, "APPROVED", minutes=2),
        make_verification(3, users[2].id, "Rejected", minutes=3),
        make_verification(4, uuid.uuid4(), "PENDING", minutes=4),
        make_verification(5, users[3].id, None, minutes=5),
    ]
    return VerificationService(FakeVerificationRepo(records), user_repo)


def test_board_groups_case_insensitively(board_service):
    board = asyncio.run(board_service.fetch_board())

    assert [c.title for c in board.columns] == ["Pending", "Approved", "Rejected"]
    pending = board.column(VerificationStatus.PENDING)
    assert [c.id for c in pending.items] == [4, 1]
    assert pending.count == 2
    assert board.column(VerificationStatus.APPROVED).count == 1
    assert board.column(VerificationStatus.REJECTED).count == 1
    # record 5 has no status and lands in no column
    assert sum(c.count for c in board.columns) == 4


def test_board_attaches_user_summaries(board_service, users):
    board = asyncio.run(board_service.fetch_board())

    by_id = {card.id: card for col in board.columns for card in col.items}
    assert by_id[1].user.name == users[0].name
    assert by_id[4].user is None


def test_board_survives_user_lookup_failure(board_service, user_repo):
    user_repo.fail = True

    board = asyncio.run(board_service.fetch_board())

    assert all(card.user is None for col in board.columns for card in col.items)


def test_status_moves_between_columns(board_service):
    asyncio.run(board_service.change_status(1, VerificationStatus.APPROVED))
    board = asyncio.run(board_service.fetch_board())
    assert 1 in [c.id for c in board.column(VerificationStatus.APPROVED).items]

    asyncio.run(board_service.change_status(1, VerificationStatus.PENDING))
    board = asyncio.run(board_service.fetch_board())
    assert 1 in [c.id for c in board.column(VerificationStatus.PENDING).items]
    assert 1 not in [c.id for c in board.column(VerificationStatus.APPROVED).items]


def test_change_status_of_missing_record(board_service):
    with pytest.raises(RecordNotFound):
        asyncio.run(board_service.change_status(99, VerificationStatus.REJECTED))


def test_group_by_status_empty():
    board = group_by_status([])
    assert [c.count for c in board.columns] == [0, 0, 0]


def test_session_notice_and_refresh(board_service):
    send = Recorder()

    async def scenario():
        hub = RealtimeHub()
        async with BoardSession(board_service, hub, send) as session:
            await session.handle({"action": "change_status", "id": 1, "status": "approved"})

    asyncio.run(scenario())

    assert send.of_type("notice")[0]["message"] == "Verification approved successfully"
    assert len(send.of_type("board")) == 2


def test_session_rejects_unknown_status(board_service):
    send = Recorder()

    async def scenario():
        session = BoardSession(board_service, RealtimeHub(), send)
        await session.handle({"action": "change_status", "id": 1, "status": "ARCHIVED"})

    asyncio.run(scenario())

    assert send.messages == [{"type": "error", "message": "Unknown status 'ARCHIVED'"}]


def test_session_reports_load_failure(board_service):
    board_service.verification_repo.fail = True
    send = Recorder()

    ok = asyncio.run(BoardSession(board_service, RealtimeHub(), send).refresh())

    assert ok is False
    assert send.messages[0]["type"] == "error"
    assert send.messages[0]["message"].startswith("Failed to load verification requests")


def test_stale_board_response_is_discarded(board_service):
    """The slower, older fetch finishes last and must not replace the newer board."""
    send = Recorder()
    session = BoardSession(board_service, RealtimeHub(), send)
    real_fetch = board_service.fetch_board
    delays = iter([0.05, 0])

    async def slow_fetch():
        await asyncio.sleep(next(delays))
        return await real_fetch()

    board_service.fetch_board = slow_fetch

    async def scenario():
        return await asyncio.gather(session.refresh(), session.refresh())

    older, newer = asyncio.run(scenario())

    assert (older, newer) == (False, True)
    assert session.sequencer.last_applied == 2
    assert len(send.of_type("board")) == 1


def test_realtime_change_refreshes_until_closed(board_service):
    send = Recorder()
    hub = RealtimeHub()
    change = RowChange(schema="public", table="verification", event="UPDATE", new={"id": 1})

    async def scenario():
        async with BoardSession(board_service, hub, send):
            assert hub.subscription_count == 1
            assert hub.dispatch(change) == 1
            await asyncio.sleep(0.01)
        assert hub.subscription_count == 0
        assert hub.dispatch(change) == 0

    asyncio.run(scenario())

    assert len(send.of_type("board")) == 2


def test_stale_board_failure_is_discarded(board_service):
    send = Recorder()
    session = BoardSession(board_service, RealtimeHub(), send)
    real_fetch = board_service.fetch_board
    calls = iter([(0.05, True), (0, False)])

    async def flaky_fetch():
        delay, fail = next(calls)
        await asyncio.sleep(delay)
        if fail:
            raise BackendUnavailable("connection reset")
        return await real_fetch()

    board_service.fetch_board = flaky_fetch

    async def scenario():
        return await asyncio.gather(session.refresh(), session.refresh())

    assert asyncio.run(scenario()) == [False, True]
    assert [m["type"] for m in send.messages] == ["board"]
