from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


def get_update_data(payload: BaseModel) -> dict:
    """Only the fields the client actually sent."""
    return payload.model_dump(exclude_unset=True)
