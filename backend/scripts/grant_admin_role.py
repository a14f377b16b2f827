"""
Script to grant the administrator role to an existing identity.

Identities come from the external identity provider, so this only writes the
role row. In non-production environments a short-lived bearer token for the
identity is printed as well.

Usage:
    python scripts/grant_admin_role.py <user-id>

Environment Variables Required:
    DATABASE_URL - PostgreSQL connection string
    REDIS_URL - Redis connection string
    SECRET_KEY - Application secret key
"""

import asyncio
import sys
from datetime import timedelta
from uuid import UUID

from complaint_hub.core.config import settings
from complaint_hub.core.database import AsyncSessionLocal
from complaint_hub.core.exceptions import StoreFailure
from complaint_hub.core.security import create_access_token
from complaint_hub.models.auth import AppRole
from complaint_hub.repositories import RoleRepository, WorkerRepository


async def grant_admin_role(user_id: UUID) -> None:
    """Make ``user_id`` an administrator."""
    print("=" * 60)
    print("Complaint Hub administrator grant")
    print("=" * 60)
    print()

    try:
        async with AsyncSessionLocal() as db:
            roles = RoleRepository(db)
            if await WorkerRepository(db).get_by_user(user_id) is not None:
                print("Error: identity is registered as a worker; remove the worker first")
                sys.exit(1)

            previous = await roles.role_of(user_id)
            await roles.set_role(user_id, AppRole.ADMINISTRATOR)
            await roles.commit()
    except StoreFailure as exc:
        print(f"Error granting role: {exc.reason}")
        sys.exit(1)

    print(f"User ID: {user_id}")
    print(f"Role: {previous.value} -> {AppRole.ADMINISTRATOR.value}")
    print()

    if settings.ENVIRONMENT != "production":
        token = create_access_token({"sub": str(user_id)}, expires_delta=timedelta(hours=8))
        print("Development bearer token (8 hours):")
        print(token)
        print()


def main() -> None:
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)
    try:
        user_id = UUID(sys.argv[1])
    except ValueError:
        print(f"Error: '{sys.argv[1]}' is not a UUID")
        sys.exit(2)
    asyncio.run(grant_admin_role(user_id))


if __name__ == "__main__":
    main()
