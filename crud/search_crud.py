import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.base import Lifecycle
from core.exceptions import ValidationError
from crud.poll_crud import poll_crud as PollCrud, validate_page
from crud.tag_crud import tag_crud as TagCrud
from models import Poll, PollOptions, PollTag, PollTagMap
from schemas.poll_schema import PollSchema

logger = logging.getLogger(__name__)


class SearchCrud:
    """Read-only poll lookups. Every result is a page of hydrated polls, newest first."""

    def __init__(self):
        self.table = Poll

    async def _page(self, session: AsyncSession, stmt, limit: int, offset: int) -> List[PollSchema]:
        stmt = (
            stmt.order_by(Poll.created_at.desc(), Poll.id.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return await PollCrud.build_poll_responses(session, result.scalars().all())

    async def search_by_tag(
        self,
        session: AsyncSession,
        tag_uuid: Optional[UUID] = None,
        tag_names: Optional[List[str]] = None,
        owner_id: Optional[UUID] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> List[PollSchema]:
        validate_page(limit, offset)
        tag_criteria = TagCrud.tag_match(tag_uuid, tag_names, owner_id)

        tagged = exists().where(
            PollTagMap.poll_id == Poll.id,
            PollTagMap.lifecycle == Lifecycle.ACTIVE,
            PollTag.id == PollTagMap.tag_id,
            PollTag.lifecycle == Lifecycle.ACTIVE,
            tag_criteria,
        )
        stmt = select(Poll).where(Poll.lifecycle == Lifecycle.ACTIVE, tagged)
        if owner_id is not None:
            stmt = stmt.where(Poll.owner_id == owner_id)

        polls = await self._page(session, stmt, limit, offset)
        logger.debug(f"Tag search uuid={tag_uuid} names={tag_names} owner={owner_id} matched {len(polls)} poll(s)")
        return polls

    @staticmethod
    def like_pattern(query: str) -> str:
        """``%query%`` with LIKE wildcards in ``query`` taken literally (escape char ``/``)."""
        escaped = query.replace("/", "//").replace("%", "/%").replace("_", "/_")
        return f"%{escaped}%"

    def text_match_stmt(self, query: str):
        # ILIKE on PostgreSQL folds any script; elsewhere it becomes lower() LIKE lower(),
        # and SQLite's lower() folds ASCII only.
        pattern = self.like_pattern(query)
        option_hit = exists().where(
            PollOptions.poll_id == Poll.id,
            PollOptions.lifecycle == Lifecycle.ACTIVE,
            PollOptions.text.ilike(pattern, escape="/"),
        )
        return select(Poll).where(
            Poll.lifecycle == Lifecycle.ACTIVE,
            or_(Poll.question.ilike(pattern, escape="/"), option_hit),
        )

    async def search_by_text(
        self,
        session: AsyncSession,
        query: str,
        limit: int = 10,
        offset: int = 0,
    ) -> List[PollSchema]:
        """Case-insensitive substring match on the question or any active option text."""
        validate_page(limit, offset)
        if query is None or query.strip() == "":
            raise ValidationError("Search query must not be empty")

        polls = await self._page(session, self.text_match_stmt(query), limit, offset)
        logger.debug(f"Text search {query!r} matched {len(polls)} poll(s)")
        return polls


search_crud = SearchCrud()
