import uuid as uuid_lib

from sqlalchemy import ForeignKey, Index, Integer, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from core.base import Base, SoftDeleteMixin, TimestampMixin


class Vote(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "votes"
    __table_args__ = (
        # one active vote per voter per poll
        Index(
            "uq_votes_active_voter",
            "poll_id",
            "voter_id",
            unique=True,
            postgresql_where=text("lifecycle = 'active'"),
            sqlite_where=text("lifecycle = 'active'"),
        ),
    )

    poll_id: Mapped[int] = mapped_column(Integer, ForeignKey("poll.id"), nullable=False)
    option_id: Mapped[int] = mapped_column(Integer, ForeignKey("poll_options.id"), nullable=False, index=True)
    voter_id: Mapped[uuid_lib.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
