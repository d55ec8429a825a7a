from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field
from typing_extensions import Annotated

from models.tag_model import TAG_NAME_MAX_LENGTH

TagName = Annotated[str, Field(max_length=TAG_NAME_MAX_LENGTH)]


class PollOptionSchema(BaseModel):
    uuid: UUID
    order_key: int
    text: str
    confidence: Optional[str] = None
    count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

class CreatePollOptionSchema(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)
    order_key: Optional[int] = Field(None, ge=0)
    confidence: Optional[str] = Field(None, max_length=32)

class TagSchema(BaseModel):
    uuid: UUID
    name: str
    owner_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

class TagUsageSchema(TagSchema):
    count: int

class CreatePollRequestSchema(BaseModel):
    question: str = Field(..., min_length=1, max_length=1000)
    extra_info: Optional[str] = None
    options: List[CreatePollOptionSchema] = Field(default_factory=list, max_length=50)
    tags: List[TagName] = Field(default_factory=list, max_length=20)

class UpdatePollRequestSchema(BaseModel):
    """Fields left unset are kept; ``options``/``tags`` replace the whole set when given."""
    poll_uuid: UUID
    question: Optional[str] = Field(None, min_length=1, max_length=1000)
    extra_info: Optional[str] = None
    options: Optional[List[CreatePollOptionSchema]] = Field(None, max_length=50)
    tags: Optional[List[TagName]] = Field(None, max_length=20)

class PollSchema(BaseModel):
    uuid: UUID
    question: str
    extra_info: Optional[str] = None
    owner_id: UUID
    created_at: datetime
    updated_at: datetime
    options: List[PollOptionSchema]
    tags: List[TagSchema]


class VoteSchema(BaseModel):
    uuid: UUID
    poll_uuid: UUID
    option_uuid: UUID
    voter_id: UUID
    created_at: datetime


class PollIdRequestSchema(BaseModel):
    poll_uuid: UUID


class ListPollsRequestSchema(BaseModel):
    mine: bool = Field(True, description="Only polls owned by the caller")
    limit: Optional[int] = None
    offset: int = 0


class AddOptionRequestSchema(BaseModel):
    poll_uuid: UUID
    option: CreatePollOptionSchema


class DeleteOptionRequestSchema(BaseModel):
    poll_uuid: UUID
    option_uuid: UUID


class VoteRequestSchema(BaseModel):
    poll_uuid: UUID
    option_uuid: UUID = Field(..., description="UUID of the option to vote for")


class TagRequestSchema(BaseModel):
    poll_uuid: UUID
    name: TagName


class UntagRequestSchema(BaseModel):
    poll_uuid: UUID
    tag_uuid: Optional[UUID] = None
    name: Optional[TagName] = None


class SearchByTagRequestSchema(BaseModel):
    tag_uuid: Optional[UUID] = None
    tag_names: Optional[List[TagName]] = None
    tag_owner_id: Optional[UUID] = Field(None, description="Only tags and polls of this owner")
    limit: Optional[int] = None
    offset: int = 0


class SearchRequestSchema(BaseModel):
    query: str
    limit: Optional[int] = None
    offset: int = 0


class PollResponseSchema(BaseModel):
    poll: PollSchema


class PollListResponseSchema(BaseModel):
    polls: List[PollSchema]


class OptionResponseSchema(BaseModel):
    option: PollOptionSchema


class VoteResponseSchema(BaseModel):
    vote: Optional[VoteSchema] = None


class SuccessResponseSchema(BaseModel):
    success: bool


class TagResponseSchema(BaseModel):
    tag: TagSchema


class TagListResponseSchema(BaseModel):
    tags: List[TagSchema]


class TagUsageListResponseSchema(BaseModel):
    tags: List[TagUsageSchema]


class ErrorDetailSchema(BaseModel):
    code: int
    message: str


class ErrorResponseSchema(BaseModel):
    err: ErrorDetailSchema
