import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.base import Lifecycle
from core.exceptions import NotFoundError, ValidationError
from core.settings import settings
from crud.poll_option_crud import poll_option_crud as PollOptionCrud
from models import Poll, PollTag, PollTagMap
from schemas.poll_schema import (
    CreatePollOptionSchema,
    CreatePollRequestSchema,
    PollOptionSchema,
    PollSchema,
    TagSchema,
    UpdatePollRequestSchema,
)

logger = logging.getLogger(__name__)


def validate_page(limit: int, offset: int) -> None:
    if limit < 1 or limit > settings.MAX_PAGE_LIMIT:
        raise ValidationError(f"limit must be between 1 and {settings.MAX_PAGE_LIMIT}")
    if offset < 0:
        raise ValidationError("offset must not be negative")


class PollCrud:
    def __init__(self):
        self.table = Poll

    async def get_active_poll(self, session: AsyncSession, poll_uuid: UUID) -> Optional[Poll]:
        stmt = (
            select(Poll)
            .where(Poll.uuid == poll_uuid, Poll.lifecycle == Lifecycle.ACTIVE)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_owned_poll(self, session: AsyncSession, poll_uuid: UUID, owner_id: UUID) -> Poll:
        """Lock and return an active poll owned by ``owner_id``.

        A foreign poll is reported exactly like a missing one.
        """
        stmt = (
            select(Poll)
            .where(
                Poll.uuid == poll_uuid,
                Poll.owner_id == owner_id,
                Poll.lifecycle == Lifecycle.ACTIVE,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        poll = result.scalars().first()
        if poll is None:
            raise NotFoundError("Poll not found")
        return poll

    async def touch_poll(self, session: AsyncSession, poll_id: int) -> None:
        await session.execute(update(Poll).where(Poll.id == poll_id).values(updated_at=func.now()))

    async def create_poll(self, session: AsyncSession, poll: CreatePollRequestSchema, owner_id: UUID) -> PollSchema:
        from crud.tag_crud import tag_crud as TagCrud

        stmt = (
            insert(Poll)
            .values(
                question=poll.question,
                extra_info=poll.extra_info,
                owner_id=owner_id,
                lifecycle=Lifecycle.ACTIVE,
            )
            .returning(Poll)
        )
        result = await session.execute(stmt)
        created_poll = result.scalars().first()

        await PollOptionCrud.create_options(session, created_poll.id, poll.options)
        await TagCrud.set_poll_tags(session, created_poll.id, poll.tags, owner_id)

        logger.info(f"Created poll {created_poll.uuid} with {len(poll.options)} option(s) for {owner_id}")
        return (await self.build_poll_responses(session, [created_poll]))[0]

    async def get_poll(self, session: AsyncSession, poll_uuid: UUID) -> Optional[PollSchema]:
        poll = await self.get_active_poll(session, poll_uuid)
        if poll is None:
            return None
        return (await self.build_poll_responses(session, [poll]))[0]

    async def update_poll(
        self,
        session: AsyncSession,
        poll: UpdatePollRequestSchema,
        owner_id: UUID,
    ) -> PollSchema:
        from crud.tag_crud import tag_crud as TagCrud

        existing_poll = await self.get_owned_poll(session, poll.poll_uuid, owner_id)

        poll_data = {"updated_at": func.now()}
        if poll.question is not None:
            poll_data["question"] = poll.question
        if "extra_info" in poll.model_fields_set:
            poll_data["extra_info"] = poll.extra_info
        await session.execute(update(Poll).where(Poll.id == existing_poll.id).values(**poll_data))

        if poll.options is not None:
            # Option identity is not preserved: the whole set is replaced.
            await PollOptionCrud.retire_options(session, existing_poll.id)
            await PollOptionCrud.create_options(session, existing_poll.id, poll.options)

        if poll.tags is not None:
            await TagCrud.set_poll_tags(session, existing_poll.id, poll.tags, owner_id)

        logger.info(f"Updated poll {existing_poll.uuid}")
        updated_poll = await self.get_active_poll(session, poll.poll_uuid)
        return (await self.build_poll_responses(session, [updated_poll]))[0]

    async def delete_poll(self, session: AsyncSession, poll_uuid: UUID, owner_id: UUID) -> bool:
        from crud.tag_crud import tag_crud as TagCrud

        stmt = (
            update(Poll)
            .where(
                Poll.uuid == poll_uuid,
                Poll.owner_id == owner_id,
                Poll.lifecycle == Lifecycle.ACTIVE,
            )
            .values(lifecycle=Lifecycle.DELETED, updated_at=func.now())
            .returning(Poll.id)
        )
        result = await session.execute(stmt)
        poll_id = result.scalars().first()
        if poll_id is None:
            return False

        await PollOptionCrud.soft_delete_options_by_poll_id(session, poll_id)
        await TagCrud.soft_delete_mappings_by_poll_id(session, poll_id)
        logger.info(f"Soft deleted poll {poll_uuid}")
        return True

    async def list_polls(
        self,
        session: AsyncSession,
        owner_id: Optional[UUID] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> List[PollSchema]:
        validate_page(limit, offset)
        stmt = select(Poll).where(Poll.lifecycle == Lifecycle.ACTIVE)
        if owner_id is not None:
            stmt = stmt.where(Poll.owner_id == owner_id)
        stmt = (
            stmt.order_by(Poll.created_at.desc(), Poll.id.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return await self.build_poll_responses(session, result.scalars().all())

    async def add_option(
        self,
        session: AsyncSession,
        poll_uuid: UUID,
        option: CreatePollOptionSchema,
        owner_id: UUID,
    ) -> PollOptionSchema:
        existing_poll = await self.get_owned_poll(session, poll_uuid, owner_id)
        start_key = await PollOptionCrud.next_order_key(session, existing_poll.id)
        created = await PollOptionCrud.create_options(session, existing_poll.id, [option], start_key=start_key)
        await self.touch_poll(session, existing_poll.id)
        return PollOptionSchema.model_validate(created[0])

    async def delete_option(
        self,
        session: AsyncSession,
        poll_uuid: UUID,
        option_uuid: UUID,
        owner_id: UUID,
    ) -> bool:
        existing_poll = await self.get_owned_poll(session, poll_uuid, owner_id)
        option = await PollOptionCrud.get_active_option_by_uuid_and_poll_id(session, option_uuid, existing_poll.id)
        if option is None:
            return False
        await PollOptionCrud.retire_options(session, existing_poll.id, [option.id])
        await self.touch_poll(session, existing_poll.id)
        return True

    async def build_poll_responses(self, session: AsyncSession, polls: Sequence[Poll]) -> List[PollSchema]:
        """Attach active options and tags to ``polls``, keeping the given order."""
        if not polls:
            return []
        poll_ids = [poll.id for poll in polls]

        options_by_poll: Dict[int, List[PollOptionSchema]] = defaultdict(list)
        for opt in await PollOptionCrud.get_active_options_by_poll_ids(session, poll_ids):
            options_by_poll[opt.poll_id].append(PollOptionSchema.model_validate(opt))

        tags_stmt = (
            select(PollTagMap.poll_id, PollTag)
            .join(PollTag, PollTag.id == PollTagMap.tag_id)
            .where(
                PollTagMap.poll_id.in_(poll_ids),
                PollTagMap.lifecycle == Lifecycle.ACTIVE,
                PollTag.lifecycle == Lifecycle.ACTIVE,
            )
            .order_by(PollTagMap.id)
            .execution_options(populate_existing=True)
        )
        tags_by_poll: Dict[int, List[TagSchema]] = defaultdict(list)
        for poll_id, tag in (await session.execute(tags_stmt)).all():
            tags_by_poll[poll_id].append(TagSchema.model_validate(tag))

        return [
            PollSchema(
                uuid=poll.uuid,
                question=poll.question,
                extra_info=poll.extra_info,
                owner_id=poll.owner_id,
                created_at=poll.created_at,
                updated_at=poll.updated_at,
                options=options_by_poll[poll.id],
                tags=tags_by_poll[poll.id],
            )
            for poll in polls
        ]


poll_crud = PollCrud()
