"""
Tests for voting: last vote wins and option counts track active votes.
"""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from core.base import Lifecycle
from core.exceptions import NotFoundError, ValidationError
from crud.poll_crud import poll_crud as PollCrud
from crud.vote_crud import vote_crud as VoteCrud
from models import Vote


async def option_counts(session, poll_uuid) -> dict[str, int]:
    poll = await PollCrud.get_poll(session, poll_uuid)
    return {opt.text: opt.count for opt in poll.options}


@pytest.mark.unit
class TestVote:
    """Casting and switching votes."""

    async def test_sum_of_counts_equals_number_of_voters(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A", "B", "C"]), owner_id)

        for idx in range(7):
            option = created.options[idx % 3]
            assert await VoteCrud.vote(session, created.uuid, option.uuid, uuid.uuid4()) is True

        counts = await option_counts(session, created.uuid)
        assert counts == {"A": 3, "B": 2, "C": 2}
        assert sum(counts.values()) == 7

    async def test_switching_vote_moves_the_count(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A", "B"]), owner_id)
        option_a, option_b = created.options
        voter = uuid.uuid4()

        await VoteCrud.vote(session, created.uuid, option_a.uuid, voter)
        await VoteCrud.vote(session, created.uuid, option_b.uuid, voter)

        assert await option_counts(session, created.uuid) == {"A": 0, "B": 1}
        current = await VoteCrud.get_user_vote(session, created.uuid, voter)
        assert current.option_uuid == option_b.uuid
        active = (
            await session.execute(
                select(func.count(Vote.id)).where(Vote.voter_id == voter, Vote.lifecycle == Lifecycle.ACTIVE)
            )
        ).scalar()
        assert active == 1

    async def test_repeat_vote_on_same_option_changes_nothing(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A"]), owner_id)
        voter = uuid.uuid4()

        await VoteCrud.vote(session, created.uuid, created.options[0].uuid, voter)
        await VoteCrud.vote(session, created.uuid, created.options[0].uuid, voter)

        assert await option_counts(session, created.uuid) == {"A": 1}
        total = (await session.execute(select(func.count(Vote.id)).where(Vote.voter_id == voter))).scalar()
        assert total == 1

    async def test_vote_for_unknown_option(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A"]), owner_id)
        with pytest.raises(NotFoundError):
            await VoteCrud.vote(session, created.uuid, uuid.uuid4(), uuid.uuid4())

    async def test_vote_for_option_of_another_poll(self, session, owner_id, poll_request) -> None:
        first = await PollCrud.create_poll(session, poll_request("one", ["A"]), owner_id)
        second = await PollCrud.create_poll(session, poll_request("two", ["B"]), owner_id)

        with pytest.raises(ValidationError):
            await VoteCrud.vote(session, first.uuid, second.options[0].uuid, uuid.uuid4())

    async def test_vote_on_deleted_poll(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A"]), owner_id)
        await PollCrud.delete_poll(session, created.uuid, owner_id)

        with pytest.raises(NotFoundError):
            await VoteCrud.vote(session, created.uuid, created.options[0].uuid, uuid.uuid4())

    async def test_vote_on_deleted_option(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A", "B"]), owner_id)
        await PollCrud.delete_option(session, created.uuid, created.options[0].uuid, owner_id)

        with pytest.raises(NotFoundError):
            await VoteCrud.vote(session, created.uuid, created.options[0].uuid, uuid.uuid4())

    def test_option_lookup_share_locks_the_poll(self) -> None:
        """Option retirement and poll deletion lock the poll row, so the vote lookup must wait on it."""
        stmt = VoteCrud.option_with_poll_stmt(uuid.uuid4())

        sql = str(stmt.compile(dialect=postgresql.dialect()))

        assert sql.rstrip().endswith("FOR SHARE OF poll")


@pytest.mark.unit
class TestRetractAndLookup:
    """Reading and withdrawing a voter's current vote."""

    async def test_retract_decrements(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A"]), owner_id)
        voter = uuid.uuid4()
        await VoteCrud.vote(session, created.uuid, created.options[0].uuid, voter)

        assert await VoteCrud.retract_vote(session, created.uuid, voter) is True

        assert await option_counts(session, created.uuid) == {"A": 0}
        assert await VoteCrud.get_user_vote(session, created.uuid, voter) is None

    async def test_retract_without_vote_returns_false(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A"]), owner_id)
        assert await VoteCrud.retract_vote(session, created.uuid, uuid.uuid4()) is False

    async def test_vote_after_retract_counts_once(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A"]), owner_id)
        voter = uuid.uuid4()
        await VoteCrud.vote(session, created.uuid, created.options[0].uuid, voter)
        await VoteCrud.retract_vote(session, created.uuid, voter)
        await VoteCrud.vote(session, created.uuid, created.options[0].uuid, voter)

        assert await option_counts(session, created.uuid) == {"A": 1}

    async def test_get_user_vote_shape(self, session, owner_id, poll_request) -> None:
        created = await PollCrud.create_poll(session, poll_request("Pick", ["A"]), owner_id)
        voter = uuid.uuid4()
        await VoteCrud.vote(session, created.uuid, created.options[0].uuid, voter)

        current = await VoteCrud.get_user_vote(session, created.uuid, voter)

        assert current.poll_uuid == created.uuid
        assert current.option_uuid == created.options[0].uuid
        assert current.voter_id == voter

    async def test_lookup_on_missing_poll(self, session) -> None:
        with pytest.raises(NotFoundError):
            await VoteCrud.get_user_vote(session, uuid.uuid4(), uuid.uuid4())
