"""Profile page ("min side") assembly — what each role gets to see."""

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from jobportal.models.application import Application
from jobportal.models.document import Document
from jobportal.models.user import User
from jobportal.schemas.position import PositionRead
from jobportal.services import application_service, document_service, position_service, user_service
from jobportal.services.errors import NotFound
from jobportal.services.policy import RequestContext, can_manage_positions


@dataclass
class ProfileView:
    user: User
    cv_documents: list[Document] = field(default_factory=list)
    cover_letter_documents: list[Document] = field(default_factory=list)
    applications: list[Application] = field(default_factory=list)
    # Employees and admins
    positions: list[PositionRead] = field(default_factory=list)
    # Admins only
    all_users: list[User] = field(default_factory=list)
    all_applications: list[Application] = field(default_factory=list)


async def build_profile_view(db: AsyncSession, ctx: RequestContext) -> ProfileView:
    """Gather the profile page data, adding role-gated sections in one place."""
    user = await user_service.find_by_id(db, ctx.user_id)
    if user is None:
        raise NotFound("The user was not found.")

    documents = await document_service.find_by_user(db, ctx.user_id)
    view = ProfileView(
        user=user,
        cv_documents=[d for d in documents if d.type == "cv"],
        cover_letter_documents=[d for d in documents if d.type == "cover_letter"],
        applications=await application_service.list_by_user(db, ctx.user_id),
    )

    if can_manage_positions(ctx):
        view.positions = await position_service.find_by_creator(db, ctx.user_id)

    if ctx.is_admin:
        view.all_users = await user_service.list_users(db)
        view.all_applications = await application_service.list_all(db)

    return view
