# app/schemas/base.py
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel
from pydantic.alias_generators import to_camel

from app.utils.clock import ensure_utc

# Aware UTC on the way in, whatever the source (JSON, ORM row, query string)
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire (dashboard contract)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
