from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.base import Base, SoftDeleteMixin, TimestampMixin


class PollOptions(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "poll_options"
    __table_args__ = (
        CheckConstraint("count >= 0", name="ck_poll_options_count_non_negative"),
        Index("ix_poll_options_poll_lifecycle", "poll_id", "lifecycle"),
    )

    poll_id: Mapped[int] = mapped_column(Integer, ForeignKey("poll.id"), nullable=False)
    order_key: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
