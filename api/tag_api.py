from fastapi import APIRouter

from core.depends import AsyncDBSession, AuthenticatedUserId
from crud.tag_crud import tag_crud as TagCrud
from schemas.poll_schema import (
    PollIdRequestSchema,
    SuccessResponseSchema,
    TagListResponseSchema,
    TagRequestSchema,
    TagResponseSchema,
    TagUsageListResponseSchema,
    UntagRequestSchema,
)

router = APIRouter()


@router.post("/poll/tag", response_model=TagResponseSchema)
async def tag_poll(
    session: AsyncDBSession,
    request: TagRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        tag = await TagCrud.tag_poll(session, request.poll_uuid, request.name, user_id)
    return TagResponseSchema(tag=tag)


@router.post("/poll/untag", response_model=SuccessResponseSchema)
async def untag_poll(
    session: AsyncDBSession,
    request: UntagRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        removed = await TagCrud.untag_poll(
            session,
            request.poll_uuid,
            user_id,
            tag_uuid=request.tag_uuid,
            name=request.name,
        )
    return SuccessResponseSchema(success=removed)


@router.post("/poll/getTags", response_model=TagListResponseSchema)
async def get_poll_tags(
    session: AsyncDBSession,
    request: PollIdRequestSchema,
):
    async with session.begin():
        tags = await TagCrud.get_poll_tags(session, request.poll_uuid)
    return TagListResponseSchema(tags=tags)


@router.post("/getAllTags", response_model=TagUsageListResponseSchema)
async def get_all_tags(
    session: AsyncDBSession,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        tags = await TagCrud.get_all_tags(session, user_id)
    return TagUsageListResponseSchema(tags=tags)
