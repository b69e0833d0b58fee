from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelCaseModel(BaseModel):
    """
    Base model for records that arrive with camelCase keys (DynamoDB items,
    REST client payloads) but are used with snake_case names in Python.

    Use `model_dump(by_alias=True)` to get the wire names back.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
