#!/usr/bin/env python3
"""
Database management script.
Creates or drops the schema and seeds the first admin account.
"""

import asyncio
import sys
import argparse
import logging
from pathlib import Path

# Add the app directory to the Python path
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import select

from app.config import settings
from app.database import AsyncSessionLocal, close_db_connection, create_tables, drop_tables
from app.models.user import User, UserRole, UserType
from app.utils.auth import hash_password

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def seed_admin(email: str, password: str, name: str) -> None:
    """Create the admin account unless one with this email exists."""
    email = email.strip().lower()
    async with AsyncSessionLocal() as session:
        try:
            result = await session.execute(select(User).where(User.email == email))
            if result.scalar_one_or_none():
                logger.info(f"Admin {email} already exists, skipping seed")
                return

            session.add(User(
                email=email,
                name=name,
                hashed_password=hash_password(password),
                role=UserRole.ADMIN,
                user_type=UserType.ADMIN,
                is_active=True,
                is_verified=True,
            ))
            await session.commit()
            logger.info(f"Admin user created: {email}")
            logger.warning("Please change the admin password in production!")
        except Exception as e:
            await session.rollback()
            logger.error(f"Failed to seed database: {e}")
            raise


async def reset_database() -> None:
    if not settings.is_development:
        raise RuntimeError("Database reset is only allowed in development")
    logger.warning("Resetting database - all data will be lost!")
    await drop_tables()
    await create_tables()


async def _run(args: argparse.Namespace) -> None:
    try:
        if args.command == "create":
            await create_tables()
        elif args.command == "reset":
            await reset_database()
        elif args.command == "seed-admin":
            await seed_admin(args.email, args.password, args.name)
    finally:
        await close_db_connection()


def main():
    """CLI interface for schema management."""
    parser = argparse.ArgumentParser(description="Database management")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("create", help="Create all tables")

    reset_parser = subparsers.add_parser("reset", help="Drop and recreate all tables (development only)")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm database reset")

    seed_parser = subparsers.add_parser("seed-admin", help="Create the admin account")
    seed_parser.add_argument("--email", default=settings.admin_email or "admin@example.com")
    seed_parser.add_argument("--password", required=True)
    seed_parser.add_argument("--name", default="System Administrator")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if args.command == "reset" and not args.confirm:
        print("Database reset requires --confirm flag")
        return

    try:
        asyncio.run(_run(args))
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
