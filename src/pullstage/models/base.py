"""Base model for Cloud Pub/Sub wire payloads."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelCaseModel(BaseModel):
    """Base model that uses camelCase field aliases to match the Pub/Sub JSON API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
