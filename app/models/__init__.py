# Library occupancy sync: SQL storage models
# Import all models here for SQLAlchemy discovery

from app.models.user import UserRow                         # noqa
from app.models.zone import ZoneRow                         # noqa
from app.models.entry_exit_event import EntryExitEventRow   # noqa
from app.models.occupancy_record import OccupancyRecordRow  # noqa
from app.models.seat_post import SeatPostRow                # noqa
from app.models.announcement import AnnouncementRow         # noqa
