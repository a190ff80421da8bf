"""Position registry — create, edit, delete and list job openings."""

import enum
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.models.application import Application
from jobportal.models.position import Position
from jobportal.models.user import User
from jobportal.schemas.position import PositionForm, PositionRead
from jobportal.services.errors import NotFound
from jobportal.services.policy import (
    RequestContext,
    can_manage_positions,
    can_modify_position,
    ensure,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "department", "location", "amount", "description", "resource_url")


class UpdateOutcome(str, enum.Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def _summary_query():
    """Positions joined with creator names and an application count."""
    application_count = (
        select(func.count(Application.id))
        .where(Application.position_id == Position.id)
        .correlate(Position)
        .scalar_subquery()
    )
    return (
        select(
            Position,
            User.username.label("creator_username"),
            User.full_name.label("creator_full_name"),
            application_count.label("application_count"),
        )
        .outerjoin(User, Position.creator_id == User.id)
    )


def _to_read(row) -> PositionRead:
    position = row[0]
    values = {column.key: getattr(position, column.key) for column in Position.__table__.columns}
    return PositionRead(
        **values,
        creator_username=row.creator_username,
        creator_full_name=row.creator_full_name,
        application_count=row.application_count or 0,
    )


async def list_all(db: AsyncSession) -> list[PositionRead]:
    result = await db.execute(_summary_query().order_by(Position.created_at.desc(), Position.id.desc()))
    return [_to_read(row) for row in result]


async def find_by_creator(db: AsyncSession, creator_id: int) -> list[PositionRead]:
    result = await db.execute(
        _summary_query()
        .where(Position.creator_id == creator_id)
        .order_by(Position.created_at.desc(), Position.id.desc())
    )
    return [_to_read(row) for row in result]


async def find_by_id(db: AsyncSession, position_id: int) -> Position | None:
    result = await db.execute(select(Position).where(Position.id == position_id))
    return result.scalar_one_or_none()


async def get_summary(db: AsyncSession, position_id: int) -> PositionRead | None:
    result = await db.execute(_summary_query().where(Position.id == position_id))
    row = result.first()
    return _to_read(row) if row else None


async def count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(Position.id)))).scalar() or 0


async def get_for_update(db: AsyncSession, ctx: RequestContext, position_id: int) -> Position:
    """Load a position the caller may edit, delete or review."""
    position = await find_by_id(db, position_id)
    if position is None:
        raise NotFound("The position was not found.")
    ensure(can_modify_position(ctx, position.creator_id), "You do not have access to this position.")
    return position


async def create_position(db: AsyncSession, ctx: RequestContext, form: PositionForm) -> Position:
    ensure(can_manage_positions(ctx), "Only employees and admins can create positions.")
    position = Position(creator_id=ctx.user_id, **form.model_dump(include=set(EDITABLE_FIELDS)))
    db.add(position)
    await db.flush()
    logger.info("User %s created position %s", ctx.user_id, position.id)
    return position


async def update_position(
    db: AsyncSession,
    ctx: RequestContext,
    position_id: int,
    form: PositionForm,
) -> UpdateOutcome:
    """Apply changed fields only; identical submissions report UNCHANGED without writing."""
    position = await get_for_update(db, ctx, position_id)

    values = form.model_dump(include=set(EDITABLE_FIELDS))
    changes = {field: value for field, value in values.items() if getattr(position, field) != value}
    if not changes:
        return UpdateOutcome.UNCHANGED

    for field, value in changes.items():
        setattr(position, field, value)
    await db.flush()
    logger.info("User %s updated position %s (%s)", ctx.user_id, position_id, ", ".join(sorted(changes)))
    return UpdateOutcome.UPDATED


async def delete_position(db: AsyncSession, ctx: RequestContext, position_id: int) -> None:
    """Delete a position; its applications go with it through ON DELETE CASCADE."""
    position = await get_for_update(db, ctx, position_id)
    await db.delete(position)
    await db.flush()
    logger.info("User %s deleted position %s", ctx.user_id, position_id)


async def delete_all_for_creator(db: AsyncSession, creator_id: int) -> int:
    result = await db.execute(
        delete(Position).where(Position.creator_id == creator_id).execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
