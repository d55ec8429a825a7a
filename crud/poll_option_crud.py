import logging
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import case, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.base import Lifecycle
from models import PollOptions, Vote
from schemas.poll_schema import CreatePollOptionSchema

logger = logging.getLogger(__name__)


class PollOptionCrud:
    def __init__(self):
        self.table = PollOptions

    async def create_options(
        self,
        session: AsyncSession,
        poll_id: int,
        options: Sequence[CreatePollOptionSchema],
        start_key: int = 0,
    ) -> List[PollOptions]:
        """Insert options in caller order. Counters always start at zero."""
        if not options:
            return []
        rows = [
            {
                "poll_id": poll_id,
                "order_key": opt.order_key if opt.order_key is not None else start_key + idx,
                "text": opt.text,
                "confidence": opt.confidence,
                "count": 0,
                "lifecycle": Lifecycle.ACTIVE,
            }
            for idx, opt in enumerate(options)
        ]
        stmt = insert(PollOptions).returning(PollOptions, sort_by_parameter_order=True)
        result = await session.execute(stmt, rows)
        return list(result.scalars().all())

    async def get_active_options_by_poll_ids(self, session: AsyncSession, poll_ids: Sequence[int]) -> Sequence[PollOptions]:
        if not poll_ids:
            return []
        stmt = (
            select(PollOptions)
            .where(PollOptions.poll_id.in_(poll_ids), PollOptions.lifecycle == Lifecycle.ACTIVE)
            .order_by(PollOptions.poll_id, PollOptions.order_key, PollOptions.id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_active_option_by_uuid_and_poll_id(
        self,
        session: AsyncSession,
        option_uuid: UUID,
        poll_id: int
    ) -> Optional[PollOptions]:
        stmt = (
            select(PollOptions)
            .where(PollOptions.uuid == option_uuid)
            .where(PollOptions.poll_id == poll_id)
            .where(PollOptions.lifecycle == Lifecycle.ACTIVE)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def next_order_key(self, session: AsyncSession, poll_id: int) -> int:
        stmt = select(func.max(PollOptions.order_key)).where(
            PollOptions.poll_id == poll_id,
            PollOptions.lifecycle == Lifecycle.ACTIVE,
        )
        current = (await session.execute(stmt)).scalar()
        return 0 if current is None else current + 1

    async def increment_count(self, session: AsyncSession, option_id: int) -> None:
        stmt = (
            update(PollOptions)
            .where(PollOptions.id == option_id)
            .values(count=PollOptions.count + 1, updated_at=func.now())
        )
        await session.execute(stmt)

    async def decrement_counts(self, session: AsyncSession, option_ids: Sequence[int]) -> None:
        """Relative decrement, clamped at zero. One decrement per id occurrence."""
        for option_id in option_ids:
            stmt = (
                update(PollOptions)
                .where(PollOptions.id == option_id)
                .values(
                    count=case((PollOptions.count > 0, PollOptions.count - 1), else_=0),
                    updated_at=func.now(),
                )
            )
            await session.execute(stmt)

    async def soft_delete_options_by_poll_id(self, session: AsyncSession, poll_id: int) -> int:
        """Cascade of a poll soft delete. Counters are kept as history."""
        stmt = (
            update(PollOptions)
            .where(PollOptions.poll_id == poll_id, PollOptions.lifecycle == Lifecycle.ACTIVE)
            .values(lifecycle=Lifecycle.DELETED, updated_at=func.now())
            .returning(PollOptions.id)
        )
        result = await session.execute(stmt)
        return len(result.all())

    async def retire_options(
        self,
        session: AsyncSession,
        poll_id: int,
        option_ids: Optional[Sequence[int]] = None,
    ) -> int:
        """Soft delete active options of a poll and retract the votes cast on them.

        With ``option_ids`` left as None every active option of the poll is retired.
        Retired options have their counter reset, so ``count`` keeps matching the
        number of active votes that reference them.
        """
        criteria = [PollOptions.poll_id == poll_id, PollOptions.lifecycle == Lifecycle.ACTIVE]
        if option_ids is not None:
            if not option_ids:
                return 0
            criteria.append(PollOptions.id.in_(option_ids))

        retiring = select(PollOptions.id).where(*criteria)
        votes_stmt = (
            update(Vote)
            .where(
                Vote.poll_id == poll_id,
                Vote.lifecycle == Lifecycle.ACTIVE,
                Vote.option_id.in_(retiring),
            )
            .values(lifecycle=Lifecycle.DELETED, updated_at=func.now())
            .returning(Vote.id)
        )
        retracted = len((await session.execute(votes_stmt)).all())

        options_stmt = (
            update(PollOptions)
            .where(*criteria)
            .values(lifecycle=Lifecycle.DELETED, count=0, updated_at=func.now())
            .returning(PollOptions.id)
        )
        retired = len((await session.execute(options_stmt)).all())

        logger.debug(f"Retired {retired} option(s) of poll {poll_id}, retracted {retracted} vote(s)")
        return retired


poll_option_crud = PollOptionCrud()
