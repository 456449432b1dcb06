"""Shared base for persisted records."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    """
    Base class for every record that is persisted or exported.

    Field names are snake_case in Python and camelCase on the wire,
    so blobs written by older versions of the app load unchanged.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_storage(self) -> dict:
        """Serialize with wire (camelCase) keys for JSON persistence."""
        return self.model_dump(mode="json", by_alias=True)
