"""Shared base model for wire-facing entities."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model whose JSON form uses camelCase keys.

    Fields are declared in snake_case and accept either spelling on input,
    so tool inputs produced by the model (``chartType``) and Python callers
    (``chart_type``) both validate.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the model feedback turn and the outbound stream.

        Returns:
            JSON-compatible dictionary with camelCase keys and no null fields
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
