"""
Role and Admin User Seeding Script

Creates the roles the service knows about and the initial admin account.
It is meant to be run once during setup; running it again changes nothing.

Environment Variables:
- ADMIN_PASSWORD: plain-text password for the admin user (hashed here)
- ADMIN_EMAIL: optional, defaults to admin@cctv-rollout.in

Usage:
    python SeedAdmin.py
"""

import logging
import os

from dotenv import load_dotenv

from Database.session import Session, Base, engine  # Session factory from database configuration
from APIs.Core import pwd_context
from Models.Admin.User import User
from Models.Admin.User import Role
from utils.access_control import ROLES

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


def seed_roles(db) -> int:
    """Insert missing roles; returns how many were created."""
    existing = {r.name for r in db.query(Role).all()}
    created = 0
    for name in ROLES:
        if name not in existing:
            db.add(Role(name=name))
            created += 1
    db.flush()
    return created


def seed_admin(password: str = None, email: str = None) -> bool:
    """
    Create the roles and the admin user.

    Returns:
        bool: True when the admin user was created, False when it existed.

    Raises:
        RuntimeError: If no admin password is configured
    """
    password = password or os.getenv("ADMIN_PASSWORD")
    email = email or os.getenv("ADMIN_EMAIL", "admin@cctv-rollout.in")

    Base.metadata.create_all(bind=engine)
    db = Session()

    try:
        created_roles = seed_roles(db)
        if created_roles:
            logger.info(f"Created {created_roles} role(s)")

        if db.query(User).filter(User.username == 'admin').first():
            db.commit()
            logger.info("Admin user already exists. No action needed.")
            return False

        if not password:
            raise RuntimeError("ADMIN_PASSWORD is not set")

        admin_role = db.query(Role).filter(Role.name == 'admin').first()
        admin = User(
            username="admin",
            email=email,
            hashed_password=pwd_context.hash(password),
            role_id=admin_role.id,
        )
        db.add(admin)
        db.commit()
        logger.info("Admin user created successfully.")
        return True

    except Exception as e:
        # Rollback transaction on error
        db.rollback()
        logger.error(f"Failed to seed admin user: {str(e)}")
        raise

    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s [%(name)s] %(message)s')
    seed_admin()
