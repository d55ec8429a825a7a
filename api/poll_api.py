from fastapi import APIRouter

from core.depends import AsyncDBSession, AuthenticatedUserId, OptionalUserId
from core.exceptions import NotFoundError, UnauthorizedError
from core.settings import settings
from crud.poll_crud import poll_crud as PollCrud
from crud.search_crud import search_crud as SearchCrud
from crud.vote_crud import vote_crud as VoteCrud
from schemas.poll_schema import (
    AddOptionRequestSchema,
    CreatePollRequestSchema,
    DeleteOptionRequestSchema,
    ListPollsRequestSchema,
    OptionResponseSchema,
    PollIdRequestSchema,
    PollListResponseSchema,
    PollResponseSchema,
    SearchByTagRequestSchema,
    SearchRequestSchema,
    SuccessResponseSchema,
    UpdatePollRequestSchema,
    VoteRequestSchema,
    VoteResponseSchema,
)

router = APIRouter(
    prefix="/poll",
)


@router.post("/create", response_model=PollResponseSchema)
async def create_poll(
    session: AsyncDBSession,
    poll: CreatePollRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        created_poll = await PollCrud.create_poll(session, poll, user_id)
    return PollResponseSchema(poll=created_poll)


@router.post("/get", response_model=PollResponseSchema)
async def get_poll(
    session: AsyncDBSession,
    request: PollIdRequestSchema,
):
    async with session.begin():
        poll = await PollCrud.get_poll(session, request.poll_uuid)
    if poll is None:
        raise NotFoundError("Poll not found")
    return PollResponseSchema(poll=poll)


@router.post("/update", response_model=PollResponseSchema)
async def update_poll(
    session: AsyncDBSession,
    poll: UpdatePollRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        updated_poll = await PollCrud.update_poll(session, poll, user_id)
    return PollResponseSchema(poll=updated_poll)


@router.post("/delete", response_model=SuccessResponseSchema)
async def delete_poll(
    session: AsyncDBSession,
    request: PollIdRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        deleted = await PollCrud.delete_poll(session, request.poll_uuid, user_id)
    return SuccessResponseSchema(success=deleted)


@router.post("/list", response_model=PollListResponseSchema)
async def list_polls(
    session: AsyncDBSession,
    request: ListPollsRequestSchema,
    user_id: OptionalUserId
):
    if request.mine and user_id is None:
        raise UnauthorizedError("Could not validate credentials")

    limit = request.limit if request.limit is not None else settings.DEFAULT_PAGE_LIMIT
    async with session.begin():
        polls = await PollCrud.list_polls(
            session,
            owner_id=user_id if request.mine else None,
            limit=limit,
            offset=request.offset,
        )
    return PollListResponseSchema(polls=polls)


@router.post("/addOption", response_model=OptionResponseSchema)
async def add_option(
    session: AsyncDBSession,
    request: AddOptionRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        option = await PollCrud.add_option(session, request.poll_uuid, request.option, user_id)
    return OptionResponseSchema(option=option)


@router.post("/deleteOption", response_model=SuccessResponseSchema)
async def delete_option(
    session: AsyncDBSession,
    request: DeleteOptionRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        deleted = await PollCrud.delete_option(session, request.poll_uuid, request.option_uuid, user_id)
    return SuccessResponseSchema(success=deleted)


@router.post("/vote", response_model=SuccessResponseSchema)
async def vote(
    session: AsyncDBSession,
    request: VoteRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        voted = await VoteCrud.vote(session, request.poll_uuid, request.option_uuid, user_id)
    return SuccessResponseSchema(success=voted)


@router.post("/myVote", response_model=VoteResponseSchema)
async def my_vote(
    session: AsyncDBSession,
    request: PollIdRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        current_vote = await VoteCrud.get_user_vote(session, request.poll_uuid, user_id)
    return VoteResponseSchema(vote=current_vote)


@router.post("/retractVote", response_model=SuccessResponseSchema)
async def retract_vote(
    session: AsyncDBSession,
    request: PollIdRequestSchema,
    user_id: AuthenticatedUserId
):
    async with session.begin():
        retracted = await VoteCrud.retract_vote(session, request.poll_uuid, user_id)
    return SuccessResponseSchema(success=retracted)


@router.post("/searchByTag", response_model=PollListResponseSchema)
async def search_by_tag(
    session: AsyncDBSession,
    request: SearchByTagRequestSchema,
):
    limit = request.limit if request.limit is not None else settings.DEFAULT_PAGE_LIMIT
    async with session.begin():
        polls = await SearchCrud.search_by_tag(
            session,
            tag_uuid=request.tag_uuid,
            tag_names=request.tag_names,
            owner_id=request.tag_owner_id,
            limit=limit,
            offset=request.offset,
        )
    return PollListResponseSchema(polls=polls)


@router.post("/search", response_model=PollListResponseSchema)
async def search_polls(
    session: AsyncDBSession,
    request: SearchRequestSchema,
):
    limit = request.limit if request.limit is not None else settings.DEFAULT_PAGE_LIMIT
    async with session.begin():
        polls = await SearchCrud.search_by_text(session, request.query, limit=limit, offset=request.offset)
    return PollListResponseSchema(polls=polls)
