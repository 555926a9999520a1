# app/services/occupancy.py
"""
Occupancy payload builders.

Percentages are never stored: every payload that carries one gets it from
occupancy_percent() so zone cards, totals and admin views cannot drift apart.
"""

from app.schemas.messages import InitialData
from app.schemas.zone import CapacitySnapshot, LibraryZone, OccupancySummary, ZoneSummary
from app.services.storage import Storage


def occupancy_percent(current: int, capacity: int) -> int:
    """Whole percent with halves rounded up (45.5 -> 46)."""
    if not capacity:
        return 0
    return (200 * current + capacity) // (2 * capacity)


def zone_summary(zone: LibraryZone) -> ZoneSummary:
    return ZoneSummary(
        id=zone.id,
        name=zone.name,
        current=zone.current_occupancy,
        capacity=zone.capacity,
        percentage=occupancy_percent(zone.current_occupancy, zone.capacity),
    )


def occupancy_summary(storage: Storage, current: int = None, total: int = None) -> OccupancySummary:
    """Live totals from the store unless a snapshot supplies its own current/total."""
    if current is None:
        current = storage.get_current_occupancy()
    if total is None:
        total = storage.get_total_capacity()
    return OccupancySummary(
        current=current,
        total=total,
        percentage=occupancy_percent(current, total),
        zones=[zone_summary(z) for z in storage.get_library_zones()],
    )


def capacity_snapshot(storage: Storage) -> CapacitySnapshot:
    return CapacitySnapshot(
        zones=[zone_summary(z) for z in storage.get_library_zones()],
        total_capacity=storage.get_total_capacity(),
    )


def initial_data(storage: Storage) -> InitialData:
    return InitialData(
        occupancy=occupancy_summary(storage),
        announcements=storage.get_active_announcements(),
        seat_posts=storage.get_active_seat_posts(),
    )
