import uuid as uuid_lib
from typing import Optional

from sqlalchemy import Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from core.base import Base, SoftDeleteMixin, TimestampMixin


class Poll(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "poll"
    __table_args__ = (
        Index("ix_poll_owner_lifecycle", "owner_id", "lifecycle"),
        Index("ix_poll_created_at", "created_at"),
    )

    question: Mapped[str] = mapped_column(Text, nullable=False)
    extra_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_id: Mapped[uuid_lib.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
