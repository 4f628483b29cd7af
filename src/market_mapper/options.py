from __future__ import annotations
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class OptionsModel(BaseModel):
    """Base for the typed option bags of transformers and validators."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    def to_config(self) -> Dict[str, Any]:
        """Options as authored in profile config (camelCase, defaults omitted)."""
        data = self.model_dump(by_alias=True)
        for name, field in type(self).model_fields.items():
            if field.is_required():
                continue
            if getattr(self, name) == field.default:
                data.pop(field.alias or name, None)
        return data
