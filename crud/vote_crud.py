import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.base import Lifecycle
from core.exceptions import ConflictError, NotFoundError, ValidationError
from crud.poll_option_crud import poll_option_crud as PollOptionCrud
from models import Poll, PollOptions, Vote
from schemas.poll_schema import VoteSchema

logger = logging.getLogger(__name__)


class VoteCrud:
    """One active vote per voter per poll; option counters follow the active votes."""

    def __init__(self):
        self.table = Vote

    async def get_active_vote(self, session: AsyncSession, poll_id: int, voter_id: UUID) -> Optional[Vote]:
        stmt = (
            select(Vote)
            .where(
                Vote.poll_id == poll_id,
                Vote.voter_id == voter_id,
                Vote.lifecycle == Lifecycle.ACTIVE,
            )
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_active_poll_id(self, session: AsyncSession, poll_uuid: UUID) -> int:
        stmt = select(Poll.id).where(Poll.uuid == poll_uuid, Poll.lifecycle == Lifecycle.ACTIVE)
        poll_id = (await session.execute(stmt)).scalar()
        if poll_id is None:
            raise NotFoundError("Poll not found")
        return poll_id

    def option_with_poll_stmt(self, option_uuid: UUID):
        """Active option and its active poll, share-locking the poll.

        Option edits and poll deletes take the poll row exclusively, so a vote
        waits for them (and they for it) instead of landing on a retired option.
        """
        return (
            select(PollOptions, Poll)
            .join(Poll, Poll.id == PollOptions.poll_id)
            .where(
                PollOptions.uuid == option_uuid,
                PollOptions.lifecycle == Lifecycle.ACTIVE,
                Poll.lifecycle == Lifecycle.ACTIVE,
            )
            .with_for_update(read=True, of=Poll)
            .execution_options(populate_existing=True)
        )

    async def vote(self, session: AsyncSession, poll_uuid: UUID, option_uuid: UUID, voter_id: UUID) -> bool:
        """Record ``voter_id``'s choice, superseding any earlier vote on the same poll."""
        row = (await session.execute(self.option_with_poll_stmt(option_uuid))).first()
        if row is None:
            raise NotFoundError("Option not found")
        option, poll = row
        if poll.uuid != poll_uuid:
            raise ValidationError("Option does not belong to this poll")

        current = await self.get_active_vote(session, poll.id, voter_id)
        if current is not None and current.option_id == option.id:
            return True

        if current is not None:
            superseded = (
                update(Vote)
                .where(Vote.id == current.id, Vote.lifecycle == Lifecycle.ACTIVE)
                .values(lifecycle=Lifecycle.DELETED, updated_at=func.now())
                .returning(Vote.option_id)
            )
            previous_option_ids = (await session.execute(superseded)).scalars().all()
            await PollOptionCrud.decrement_counts(session, previous_option_ids)

        # A concurrent vote by the same voter trips the partial unique index.
        try:
            await session.execute(
                insert(Vote).values(
                    poll_id=poll.id,
                    option_id=option.id,
                    voter_id=voter_id,
                    lifecycle=Lifecycle.ACTIVE,
                )
            )
        except IntegrityError as e:
            raise ConflictError("Vote was changed concurrently, retry") from e

        await PollOptionCrud.increment_count(session, option.id)
        logger.info(f"Voter {voter_id} voted for option {option.uuid} on poll {poll.uuid}")
        return True

    async def get_user_vote(self, session: AsyncSession, poll_uuid: UUID, voter_id: UUID) -> Optional[VoteSchema]:
        poll_id = await self.get_active_poll_id(session, poll_uuid)
        stmt = (
            select(Vote, PollOptions.uuid)
            .join(PollOptions, PollOptions.id == Vote.option_id)
            .where(
                Vote.poll_id == poll_id,
                Vote.voter_id == voter_id,
                Vote.lifecycle == Lifecycle.ACTIVE,
            )
            .execution_options(populate_existing=True)
        )
        row = (await session.execute(stmt)).first()
        if row is None:
            return None
        vote, option_uuid = row
        return VoteSchema(
            uuid=vote.uuid,
            poll_uuid=poll_uuid,
            option_uuid=option_uuid,
            voter_id=vote.voter_id,
            created_at=vote.created_at,
        )

    async def retract_vote(self, session: AsyncSession, poll_uuid: UUID, voter_id: UUID) -> bool:
        poll_id = await self.get_active_poll_id(session, poll_uuid)
        stmt = (
            update(Vote)
            .where(
                Vote.poll_id == poll_id,
                Vote.voter_id == voter_id,
                Vote.lifecycle == Lifecycle.ACTIVE,
            )
            .values(lifecycle=Lifecycle.DELETED, updated_at=func.now())
            .returning(Vote.option_id)
        )
        option_ids = (await session.execute(stmt)).scalars().all()
        if not option_ids:
            return False
        await PollOptionCrud.decrement_counts(session, option_ids)
        logger.info(f"Voter {voter_id} retracted their vote on poll {poll_uuid}")
        return True


vote_crud = VoteCrud()
