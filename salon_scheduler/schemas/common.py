"""Base model for request/response bodies with camelCase field names on the wire"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def display_time(moment) -> str:
    """'9:00 AM'"""
    return moment.strftime("%I:%M %p").lstrip("0")
