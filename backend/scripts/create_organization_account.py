"""
Script to create the login account for a predefined organization.

Usage:
    python scripts/create_organization_account.py

Environment Variables Required:
    DATABASE_URL - PostgreSQL connection string
    SECRET_KEY - Application secret key
"""

import asyncio
import sys
from getpass import getpass

from civicconnect.core.database import AsyncSessionLocal
from civicconnect.core.errors import CivicConnectError
from civicconnect.core.security import hash_password
from civicconnect.services.organization_directory import ORGANIZATIONS, find_organization
from civicconnect.services.role_resolver import PrincipalKind
from civicconnect.storage import SQLAlchemyStorage


async def create_organization_account():
    """Create an organization principal interactively."""
    print("=" * 60)
    print("CivicConnect Organization Account Creation")
    print("=" * 60)
    print()

    for entry in ORGANIZATIONS:
        print(f"  {entry.id:<20} {entry.name}")
    print()

    reference = input("Enter organization id or name: ").strip()
    entry = find_organization(reference)
    if entry is None:
        print(f"Error: Unknown organization '{reference}'")
        sys.exit(1)

    username = input(f"Enter username [default: {entry.id}]: ").strip() or entry.id
    email = input("Enter contact email: ").strip()
    if not email:
        print("Error: Email is required")
        sys.exit(1)

    while True:
        password = getpass("Enter password: ")
        password_confirm = getpass("Confirm password: ")

        if len(password) < 6:
            print("Error: Password must be at least 6 characters")
            continue

        if password != password_confirm:
            print("Error: Passwords do not match. Please try again.")
            continue

        break

    print()
    print(f"Creating account for {entry.name}...")

    try:
        async with AsyncSessionLocal() as db:
            storage = SQLAlchemyStorage(db)

            if await storage.get_user_by_username(username):
                print(f"Error: User '{username}' already exists")
                sys.exit(1)

            record = await storage.get_organization(entry.id)
            if record is not None and record.uid:
                print(f"Error: {entry.id} already has an account")
                sys.exit(1)

            async with storage.transaction():
                user = await storage.create_user(
                    username=username,
                    email=email,
                    hashed_password=hash_password(password),
                    is_organization=True,
                    organization_name=entry.id,
                    role=PrincipalKind.ORGANIZATION.value,
                )
                await storage.ensure_organization(entry)
                await storage.set_organization_account(entry.id, user.uid, email)

            print()
            print("Organization account created successfully!")
            print()
            print(f"Organization: {entry.name} ({entry.id})")
            print(f"Username: {user.username}")
            print(f"UID: {user.uid}")
            print()
            print("You can now login at: POST /api/auth/login")
            print()

    except CivicConnectError as e:
        print(f"Error creating organization account: {e.detail}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(create_organization_account())
