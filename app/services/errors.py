# app/services/errors.py
"""
Typed errors raised by the store and ingest layers.
Routers and the WebSocket command handler translate them at the boundary:
InvalidInputError → 400, NotFoundError → 404, UnauthorizedError → 401.
"""


class LibrarySyncError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(LibrarySyncError):
    status_code = 400


class NotFoundError(LibrarySyncError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class UnauthorizedError(LibrarySyncError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
