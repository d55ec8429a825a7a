import enum
import uuid as uuid_lib
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, Uuid, case, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, declared_attr


class Lifecycle(str, enum.Enum):
    """Row lifecycle. Rows are tombstoned, never physically removed."""

    ACTIVE = "active"
    DELETED = "deleted"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)


class SoftDeleteMixin:
    lifecycle: Mapped[Lifecycle] = mapped_column(
        Enum(
            Lifecycle,
            native_enum=False,
            length=16,
            values_callable=lambda members: [m.value for m in members],
        ),
        default=Lifecycle.ACTIVE,
        server_default=Lifecycle.ACTIVE.value,
        nullable=False,
    )


class Base(DeclarativeBase):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[uuid_lib.UUID] = mapped_column(Uuid(as_uuid=True), default=uuid_lib.uuid4, unique=True, nullable=False)

    @declared_attr
    def __tablename__(self) -> str:
        return self.__name__.lower()


def dialect_insert(session: AsyncSession, model):
    """Return an INSERT supporting ``on_conflict_do_update`` for the session's backend."""
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert is not supported on {dialect_name}")


def resurrect_values(model) -> dict:
    """SET clause for an upsert: reactivate a tombstoned row, stamping it only if it was deleted."""
    return {
        "lifecycle": Lifecycle.ACTIVE,
        "updated_at": case(
            (model.lifecycle == Lifecycle.DELETED, func.now()),
            else_=model.updated_at,
        ),
    }
