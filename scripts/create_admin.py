"""Create the first admin account, or promote an existing user to admin.

Registration through the web always creates students, so a fresh install
needs one admin bootstrapped from the command line.

Usage:
    python -m scripts.create_admin --username admin --email admin@example.com
    python -m scripts.create_admin --username kari --promote
"""

import argparse
import asyncio
import getpass
import logging
import sys

from jobportal.models.base import AsyncSessionLocal, engine
from jobportal.schemas import RegistrationForm, parse_form
from jobportal.services import user_service
from jobportal.services.errors import PortalError
from jobportal.services.policy import ADMIN

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def create_admin(username: str, email: str, password: str, full_name: str | None) -> None:
    form = parse_form(RegistrationForm, {
        "username": username,
        "email": email,
        "password": password,
        "confirm_password": password,
        "full_name": full_name,
    })
    async with AsyncSessionLocal() as db:
        user = await user_service.register(db, form, role=ADMIN)
        await db.commit()
    logger.info("Created admin %s (id %s)", user.username, user.id)


async def promote(username: str) -> None:
    async with AsyncSessionLocal() as db:
        user = await user_service.find_by_username(db, username)
        if user is None:
            raise PortalError(f"No user named {username!r}.")
        await user_service.change_role(db, user, ADMIN)
        await db.commit()
    logger.info("Promoted %s to admin", username)


async def run(args) -> None:
    try:
        if args.promote:
            await promote(args.username)
        else:
            if not args.email:
                raise PortalError("--email is required when creating an admin.")
            password = getpass.getpass("Password: ")
            if password != getpass.getpass("Confirm password: "):
                raise PortalError("Passwords do not match.")
            await create_admin(args.username, args.email, password, args.full_name)
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote a portal admin")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", help="Email for a new admin account")
    parser.add_argument("--full-name", dest="full_name")
    parser.add_argument("--promote", action="store_true", help="Promote an existing user instead of creating one")
    args = parser.parse_args()

    try:
        asyncio.run(run(args))
    except PortalError as exc:
        logger.error("%s", exc.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
