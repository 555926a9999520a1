# app/services/command_handler.py
"""
Routes inbound WebSocket commands to their handlers.

Reads reply to the sender only; updateCapacity mutates shared state and is
broadcast to everyone by the ingest layer. There is no error frame: a bad
frame is logged and dropped, and the socket stays open.
"""

from pydantic import ValidationError

from app.schemas.messages import CommandType, MessageType, WsMessage
from app.services.broadcast import Connection, ConnectionRegistry
from app.services.errors import InvalidInputError, NotFoundError
from app.services.ingest import IngestService
from app.services.occupancy import capacity_snapshot, initial_data, occupancy_summary
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _get_occupancy(conn, registry, ingest, data):
    registry.send(conn, MessageType.OCCUPANCY_UPDATE, occupancy_summary(ingest.storage))


def _get_admin_data(conn, registry, ingest, data):
    registry.send(conn, MessageType.CAPACITY_UPDATE, capacity_snapshot(ingest.storage))


def _get_seat_posts(conn, registry, ingest, data):
    registry.send(conn, MessageType.INITIAL_DATA, initial_data(ingest.storage))


def _update_capacity(conn, registry, ingest, data):
    ingest.update_capacity(data)


COMMANDS = {
    CommandType.GET_OCCUPANCY.value: _get_occupancy,
    CommandType.GET_ADMIN_DATA.value: _get_admin_data,
    CommandType.GET_SEAT_POSTS.value: _get_seat_posts,
    CommandType.UPDATE_CAPACITY.value: _update_capacity,
}


def handle_command(raw: str, conn: Connection, registry: ConnectionRegistry, ingest: IngestService) -> bool:
    """Returns True when the command was handled, False when it was dropped."""
    try:
        message = WsMessage.model_validate_json(raw)
    except ValidationError:
        logger.warning(f"Malformed frame from #{conn.id} ({conn.peer}) — dropped")
        return False

    handler = COMMANDS.get(message.type)
    if handler is None:
        logger.warning(f"Unknown command '{message.type}' from #{conn.id} — dropped")
        return False

    try:
        handler(conn, registry, ingest, message.data)
    except (InvalidInputError, NotFoundError) as e:
        logger.warning(f"Command '{message.type}' from #{conn.id} rejected: {e.message}")
        return False
    logger.debug(f"Command '{message.type}' from #{conn.id} handled")
    return True
