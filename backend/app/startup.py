"""
Application startup validation and initialization.

This module performs startup checks so the scheduling API refuses to
serve requests in production against a database it cannot use.
"""

import logging
import sys
from typing import List, Tuple

import sqlalchemy as sa
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.database import engine, Base

logger = logging.getLogger(__name__)


REQUIRED_TABLES = [
    "staff_members",
    "roles",
    "staff_locations",
    "staff_services",
    "staff_invitations",
    "shifts",
    "recurring_shift_patterns",
    "time_off_types",
    "time_off_requests",
]


class StartupValidator:
    """Validates application startup requirements"""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def check_database_connection(self) -> bool:
        """Check database connectivity"""
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection successful")
            return True
        except SQLAlchemyError as e:
            self.errors.append(f"Database connection failed: {str(e)}")
            return False

    def check_required_tables(self) -> bool:
        """Create missing tables in development, report them elsewhere"""
        try:
            existing_tables = set(sa.inspect(engine).get_table_names())
        except SQLAlchemyError as e:
            self.warnings.append(f"Could not check database tables: {str(e)}")
            return True

        missing_tables = [t for t in REQUIRED_TABLES if t not in existing_tables]
        if not missing_tables:
            return True

        if settings.is_development:
            Base.metadata.create_all(bind=engine)
            logger.info(f"Created missing tables: {', '.join(missing_tables)}")
            return True

        self.errors.append(f"Missing database tables: {', '.join(missing_tables)}")
        return False

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        """Run all validation checks"""
        checks = [
            ("Database Connection", self.check_database_connection),
            ("Database Tables", self.check_required_tables),
        ]

        all_passed = True
        for check_name, check_func in checks:
            logger.info(f"Running check: {check_name}")
            if not check_func():
                all_passed = False
                # table inspection is pointless without a connection
                break

        return all_passed, self.errors, self.warnings


def run_startup_checks() -> Tuple[bool, List[str]]:
    """Run all startup validation checks"""
    logger.info(f"Starting staff scheduling API (environment: {settings.environment})")

    # make sure every model is registered on Base.metadata
    import modules.staff.models  # noqa: F401

    validator = StartupValidator()
    passed, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"Startup warning: {warning}")
    for error in errors:
        logger.error(f"Startup error: {error}")

    if not passed and settings.is_production:
        logger.error("Cannot start in production with errors!")
        sys.exit(1)
    elif not passed:
        logger.warning("Starting in development mode despite errors")
    else:
        logger.info("All startup checks passed")

    return passed, warnings


def configure_logging():
    """Configure root logging from settings"""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
