# app/services/seed.py
"""
Startup data: the fixed zone catalogue, plus optional demo content
(an announcement and today's hourly occupancy curve) for the dashboard.
"""

from datetime import timedelta

from app.schemas.announcement import AnnouncementCreate
from app.schemas.occupancy import OccupancyRecordCreate
from app.schemas.zone import LibraryZoneCreate, ZoneCoordinates
from app.services.storage import Storage
from app.utils.clock import start_of_day
from app.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ZONES = [
    LibraryZoneCreate(
        name="Zone A - Reading Area", capacity=100,
        resources=["quiet_reading", "power_outlets"],
        coordinates=ZoneCoordinates(x=60, y=60, width=300, height=200),
        current_occupancy=32,
    ),
    LibraryZoneCreate(
        name="Zone B - Computer Lab", capacity=50,
        resources=["computers", "printers", "scanners"],
        coordinates=ZoneCoordinates(x=440, y=60, width=300, height=120),
        current_occupancy=47,
    ),
    LibraryZoneCreate(
        name="Zone C - Group Study", capacity=80,
        resources=["group_tables", "whiteboards", "power_outlets"],
        coordinates=ZoneCoordinates(x=440, y=220, width=300, height=120),
        current_occupancy=54,
    ),
    LibraryZoneCreate(
        name="Zone D - Quiet Zone", capacity=40,
        resources=["silent_study", "individual_desks"],
        coordinates=ZoneCoordinates(x=60, y=300, width=300, height=40),
        current_occupancy=22,
    ),
]

# Visitors per hour from 08:00, and how they split across zones A-D
HOURLY_OCCUPANCY = [45, 87, 156, 201, 245, 267, 310, 345, 290, 234, 178, 145]
ZONE_SHARE = {"1": 0.30, "2": 0.25, "3": 0.35, "4": 0.10}


def seed_zones(storage: Storage) -> bool:
    """Returns False when zones already exist (persistent backend restart)."""
    if storage.get_library_zones():
        logger.info("Zones already present — skipping zone seed")
        return False
    for zone in DEFAULT_ZONES:
        storage.create_library_zone(zone)
    logger.info(f"Seeded {len(DEFAULT_ZONES)} library zones")
    return True


def seed_demo_data(storage: Storage, admin_id: int = 1):
    now = storage.clock()
    today = start_of_day(now)

    storage.create_announcement(AnnouncementCreate(
        message="The library will close early at 20:00 today due to system maintenance. "
                "Please plan accordingly.",
        created_by=admin_id,
        expiry=today + timedelta(hours=23, minutes=59, seconds=59),
    ))

    seeded = 0
    for hour, visitors in enumerate(HOURLY_OCCUPANCY):
        timestamp = today + timedelta(hours=8 + hour)
        if timestamp > now:
            break
        storage.save_occupancy_record(OccupancyRecordCreate(
            timestamp=timestamp,
            current_occupancy=visitors,
            capacity=storage.get_total_capacity(),
            zone_occupancy={zid: int(visitors * share) for zid, share in ZONE_SHARE.items()},
        ))
        seeded += 1

    # Latest record must match the live zone counts
    storage.save_occupancy_record(OccupancyRecordCreate(
        timestamp=now,
        current_occupancy=storage.get_current_occupancy(),
        capacity=storage.get_total_capacity(),
        zone_occupancy=storage.get_all_zone_occupancy(),
    ))
    logger.info(f"Seeded demo announcement and {seeded} hourly occupancy records")
