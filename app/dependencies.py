# app/dependencies.py
"""
FastAPI dependencies. The store, the connection registry and the ingest
service are built once in create_app() and live on app.state; handlers get
them injected instead of importing module globals.
"""

from starlette.requests import HTTPConnection

from app.services.broadcast import ConnectionRegistry
from app.services.ingest import IngestService
from app.services.storage import Storage


def get_storage(conn: HTTPConnection) -> Storage:
    return conn.app.state.storage


def get_registry(conn: HTTPConnection) -> ConnectionRegistry:
    return conn.app.state.registry


def get_ingest(conn: HTTPConnection) -> IngestService:
    return conn.app.state.ingest
