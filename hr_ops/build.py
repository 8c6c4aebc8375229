#!/usr/bin/env python3
"""
Build orchestrator for the HR operations core
Creates tables and makes sure the critical admin account exists
"""

import os

from hr_ops import db
from hr_ops.logger import get_logger

logger = get_logger("hr_ops.build")

ADMIN_USERNAME = 'admin'


def verify_critical_data():
    """
    Returns:
        bool: True if the admin user is present
    """
    from hr_ops.data.core.user_info.user import User

    admin_user = User.query.filter_by(username=ADMIN_USERNAME).first()
    if not admin_user:
        logger.warning("Admin user not found")
        return False
    logger.info("Critical data verification passed")
    return True


def insert_critical_data():
    """
    Insert the admin user when it is missing.

    Raises:
        RuntimeError: If ADMIN_PASSWORD is not set
    """
    from hr_ops.buisness.core.user_context import UserContext

    if verify_critical_data():
        logger.info("Critical data already present, skipping insertion")
        return

    password = os.environ.get('ADMIN_PASSWORD')
    if not password:
        logger.critical("ADMIN_PASSWORD not set in environment! Cannot create admin user.")
        raise RuntimeError("ADMIN_PASSWORD environment variable is required to create the admin user")

    UserContext.create(
        username=ADMIN_USERNAME,
        email=os.environ.get('ADMIN_EMAIL', 'admin@example.com'),
        password=password,
        role='admin',
        first_name='System',
        last_name='Administrator',
        department=os.environ.get('ADMIN_DEPARTMENT', 'Administration'),
    )
    logger.info("Admin user created")


def build_database(insert_data=True):
    """
    Create all tables, then insert critical data.

    Args:
        insert_data: Skip critical data insertion when False
    """
    logger.info("Creating database tables")
    db.create_all()
    logger.info("Database tables created")

    if insert_data:
        insert_critical_data()
