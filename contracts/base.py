"""Shared base model for all Site Foundry contracts.

Agents exchange JSON with camelCase keys (that is also what the rendered site
imports), while Python code works with snake_case attributes.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ContractModel(BaseModel):
    """Base for every contract: camelCase aliases, population by field name."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json_dict(self) -> dict:
        """Dump to a JSON-compatible dict using the camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True)
