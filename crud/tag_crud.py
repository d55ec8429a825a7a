import logging
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.base import Lifecycle, dialect_insert, resurrect_values
from core.exceptions import NotFoundError, ValidationError
from crud.poll_crud import poll_crud as PollCrud
from models import PollTag, PollTagMap
from models.tag_model import TAG_NAME_MAX_LENGTH
from schemas.poll_schema import TagSchema, TagUsageSchema

logger = logging.getLogger(__name__)


class TagCrud:
    """Shares one tag row per ``(name, owner)`` across all of an owner's polls.

    Tag rows and poll/tag mappings are written with INSERT .. ON CONFLICT DO UPDATE
    so concurrent callers creating the same tag or mapping converge on one row
    instead of racing a read-then-insert.
    """

    def __init__(self):
        self.table = PollTag

    @staticmethod
    def clean_names(names: Iterable[str]) -> List[str]:
        """Reject blank names and drop repeats. Names are matched exactly, case included."""
        cleaned: List[str] = []
        for name in names:
            if name is None or name.strip() == "":
                raise ValidationError("Tag name must not be empty")
            if len(name) > TAG_NAME_MAX_LENGTH:
                raise ValidationError(f"Tag name must be at most {TAG_NAME_MAX_LENGTH} characters")
            if name not in cleaned:
                cleaned.append(name)
        return cleaned

    async def upsert_tag(self, session: AsyncSession, name: str, owner_id: UUID) -> PollTag:
        """Create the tag, resurrect it if it was deleted, or reuse it as is."""
        stmt = dialect_insert(session, PollTag).values(
            name=name,
            owner_id=owner_id,
            lifecycle=Lifecycle.ACTIVE,
        )
        stmt = (
            stmt.on_conflict_do_update(
                index_elements=["name", "owner_id"],
                set_=resurrect_values(PollTag),
            )
            .returning(PollTag)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().one()

    async def upsert_mapping(self, session: AsyncSession, poll_id: int, tag_id: int, owner_id: UUID) -> PollTagMap:
        stmt = dialect_insert(session, PollTagMap).values(
            poll_id=poll_id,
            tag_id=tag_id,
            owner_id=owner_id,
            lifecycle=Lifecycle.ACTIVE,
        )
        stmt = (
            stmt.on_conflict_do_update(
                index_elements=["poll_id", "tag_id", "owner_id"],
                set_=resurrect_values(PollTagMap),
            )
            .returning(PollTagMap)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().one()

    async def set_poll_tags(
        self,
        session: AsyncSession,
        poll_id: int,
        names: Iterable[str],
        owner_id: UUID,
    ) -> List[PollTag]:
        """Make the poll's active tags exactly ``names``."""
        tags: List[PollTag] = []
        for name in self.clean_names(names):
            tag = await self.upsert_tag(session, name, owner_id)
            await self.upsert_mapping(session, poll_id, tag.id, owner_id)
            tags.append(tag)

        stale_stmt = update(PollTagMap).where(
            PollTagMap.poll_id == poll_id,
            PollTagMap.lifecycle == Lifecycle.ACTIVE,
        )
        keep_ids = [tag.id for tag in tags]
        if keep_ids:
            stale_stmt = stale_stmt.where(PollTagMap.tag_id.not_in(keep_ids))
        stale_stmt = stale_stmt.values(lifecycle=Lifecycle.DELETED, updated_at=func.now()).returning(PollTagMap.id)
        dropped = len((await session.execute(stale_stmt)).all())

        logger.debug(f"Poll {poll_id} tags set to {[tag.name for tag in tags]}, {dropped} mapping(s) dropped")
        return tags

    async def tag_poll(self, session: AsyncSession, poll_uuid: UUID, name: str, owner_id: UUID) -> TagSchema:
        existing_poll = await PollCrud.get_owned_poll(session, poll_uuid, owner_id)
        (name,) = self.clean_names([name])
        tag = await self.upsert_tag(session, name, owner_id)
        await self.upsert_mapping(session, existing_poll.id, tag.id, owner_id)
        await PollCrud.touch_poll(session, existing_poll.id)
        return TagSchema.model_validate(tag)

    async def untag_poll(
        self,
        session: AsyncSession,
        poll_uuid: UUID,
        owner_id: UUID,
        tag_uuid: Optional[UUID] = None,
        name: Optional[str] = None,
    ) -> bool:
        existing_poll = await PollCrud.get_owned_poll(session, poll_uuid, owner_id)
        if tag_uuid is None and (name is None or name.strip() == ""):
            raise ValidationError("A tag uuid or tag name is required")

        tag_filter = PollTag.uuid == tag_uuid if tag_uuid is not None else PollTag.name == name
        tag_ids = select(PollTag.id).where(PollTag.owner_id == owner_id, tag_filter)
        stmt = (
            update(PollTagMap)
            .where(
                PollTagMap.poll_id == existing_poll.id,
                PollTagMap.owner_id == owner_id,
                PollTagMap.lifecycle == Lifecycle.ACTIVE,
                PollTagMap.tag_id.in_(tag_ids),
            )
            .values(lifecycle=Lifecycle.DELETED, updated_at=func.now())
            .returning(PollTagMap.id)
        )
        removed = len((await session.execute(stmt)).all())
        if not removed:
            return False
        await PollCrud.touch_poll(session, existing_poll.id)
        return True

    async def soft_delete_mappings_by_poll_id(self, session: AsyncSession, poll_id: int) -> int:
        stmt = (
            update(PollTagMap)
            .where(PollTagMap.poll_id == poll_id, PollTagMap.lifecycle == Lifecycle.ACTIVE)
            .values(lifecycle=Lifecycle.DELETED, updated_at=func.now())
            .returning(PollTagMap.id)
        )
        result = await session.execute(stmt)
        return len(result.all())

    async def get_poll_tags(self, session: AsyncSession, poll_uuid: UUID) -> List[TagSchema]:
        poll = await PollCrud.get_active_poll(session, poll_uuid)
        if poll is None:
            raise NotFoundError("Poll not found")
        return (await PollCrud.build_poll_responses(session, [poll]))[0].tags

    async def get_all_tags(self, session: AsyncSession, owner_id: UUID) -> List[TagUsageSchema]:
        """The owner's active tags with how many active mappings use each."""
        usage = func.count(PollTagMap.id)
        stmt = (
            select(PollTag, usage.label("usage"))
            .outerjoin(
                PollTagMap,
                and_(PollTagMap.tag_id == PollTag.id, PollTagMap.lifecycle == Lifecycle.ACTIVE),
            )
            .where(PollTag.owner_id == owner_id, PollTag.lifecycle == Lifecycle.ACTIVE)
            .group_by(PollTag.id)
            .order_by(usage.desc(), PollTag.name.asc())
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return [
            TagUsageSchema(**TagSchema.model_validate(tag).model_dump(), count=count)
            for tag, count in result.all()
        ]

    def tag_match(self, tag_uuid: Optional[UUID], tag_names: Optional[List[str]], owner_id: Optional[UUID]):
        """Criteria on PollTag for a search by uuid or by (per-owner) names."""
        if tag_uuid is None and not tag_names:
            raise ValidationError("A tag uuid or at least one tag name is required")
        criteria = []
        if tag_uuid is not None:
            criteria.append(PollTag.uuid == tag_uuid)
        if tag_names:
            by_name = PollTag.name.in_(self.clean_names(tag_names))
            if owner_id is not None:
                by_name = and_(by_name, PollTag.owner_id == owner_id)
            criteria.append(by_name)
        return or_(*criteria)


tag_crud = TagCrud()
