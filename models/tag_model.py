import uuid as uuid_lib

from sqlalchemy import String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.base import Base, SoftDeleteMixin, TimestampMixin

TAG_NAME_MAX_LENGTH = 100


class PollTag(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "poll_tag"
    __table_args__ = (
        UniqueConstraint("name", "owner_id", name="uq_poll_tag_name_owner"),
    )

    name: Mapped[str] = mapped_column(String(TAG_NAME_MAX_LENGTH), nullable=False)
    owner_id: Mapped[uuid_lib.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
