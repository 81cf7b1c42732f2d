#!/usr/bin/env python3
"""Setup script for the rental booking API: migrate, then seed the catalog."""

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from rental.core.database import async_session_factory, close_db
from rental.models import Equipment, InsurancePackage
from rental.schemas.equipment import CreateEquipmentRequest
from rental.schemas.insurance import CreateInsurancePackageRequest
from rental.services.equipment_service import EquipmentService
from rental.services.insurance_service import InsuranceService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

server_dir = Path(__file__).parent.parent / "server"

# Packages offered when the catalog is empty
DEFAULT_INSURANCE_PACKAGES = [
    CreateInsurancePackageRequest(
        name="Bảo hiểm cơ bản",
        description="Basic coverage for accidental damage",
        min_coverage=1_000_000,
        max_coverage=5_000_000,
    ),
    CreateInsurancePackageRequest(
        name="Bảo hiểm toàn diện",
        description="Comprehensive coverage including theft and total loss",
        min_coverage=8_000_000,
        max_coverage=20_000_000,
    ),
]

SAMPLE_EQUIPMENT = [
    CreateEquipmentRequest(
        title="Sony A7 IV camera body",
        owner_id="owner-demo",
        daily_rate=800_000,
        replacement_price=45_000_000,
        unit_count=2,
    ),
    CreateEquipmentRequest(
        title="DJI Mini 4 Pro drone",
        owner_id="owner-demo",
        daily_rate=500_000,
        replacement_price=20_000_000,
        unit_count=1,
    ),
]


def run_migrations() -> None:
    """Upgrade the database schema to the latest revision."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Seed insurance packages and demo equipment into an empty catalog."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        existing = await db.execute(select(func.count(InsurancePackage.id)))
        if existing.scalar_one() == 0:
            insurance_service = InsuranceService(db)
            for package in DEFAULT_INSURANCE_PACKAGES:
                await insurance_service.create_package(package)
        else:
            logger.info("Insurance packages already exist, skipping...")

        existing = await db.execute(select(func.count(Equipment.id)))
        if existing.scalar_one() == 0:
            equipment_service = EquipmentService(db)
            for equipment in SAMPLE_EQUIPMENT:
                await equipment_service.create_equipment(equipment)
        else:
            logger.info("Equipment already exists, skipping...")

    await close_db()
    logger.info("Sample data created successfully!")


def main() -> None:
    """Main setup function."""
    logger.info("Starting rental booking API setup...")

    # Alembic's env runs its own event loop, so migrate before entering ours
    run_migrations()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: uvicorn rental.main:app --reload")


if __name__ == "__main__":
    main()
