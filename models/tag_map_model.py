import uuid as uuid_lib

from sqlalchemy import ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.base import Base, SoftDeleteMixin, TimestampMixin


class PollTagMap(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "poll_tag_map"
    __table_args__ = (
        UniqueConstraint("poll_id", "tag_id", "owner_id", name="uq_poll_tag_map_poll_tag_owner"),
    )

    poll_id: Mapped[int] = mapped_column(Integer, ForeignKey("poll.id"), nullable=False)
    tag_id: Mapped[int] = mapped_column(Integer, ForeignKey("poll_tag.id"), nullable=False, index=True)
    owner_id: Mapped[uuid_lib.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
