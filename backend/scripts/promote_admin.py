"""Grant a role to an existing account.

Usage: python scripts/promote_admin.py <username-or-email> [student|teacher|admin]
"""

import asyncio
import sys

from forum.domain.exceptions import NotFoundError
from forum.domain.repo import ForumRepository
from forum.domain.roles import Role, parse_role
from forum.domain.services import build_services
from forum.infra.postgres import Database
from forum.settings import settings


async def main(identifier: str, role: Role) -> int:
	database = Database.from_settings(settings)
	await database.init()
	try:
		services = build_services(ForumRepository(database), settings=settings)
		user = await services.users.promote(identifier, role)
	except NotFoundError:
		print(f"User not found: {identifier}")
		return 1
	finally:
		await database.close()
	print(f"{user.username} is now {user.role.value}.")
	return 0


if __name__ == "__main__":
	if len(sys.argv) < 2:
		print("Usage: python scripts/promote_admin.py <username-or-email> [student|teacher|admin]")
		sys.exit(1)
	role = parse_role(sys.argv[2] if len(sys.argv) > 2 else "admin")
	if role is None:
		print("Role must be student, teacher, or admin")
		sys.exit(1)
	if sys.platform == "win32":
		asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
	sys.exit(asyncio.run(main(sys.argv[1], role)))
