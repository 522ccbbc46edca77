import logging
from typing import Any

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class CustomBaseModel(BaseModel):
    """Custom base model for all response schemas.
    - pre-process the data before init
    - set the default value if the value is invalid
    - accept both field names and aliases
    """

    model_config = ConfigDict(populate_by_name=True)

    def __init__(self, **data: Any) -> None:
        fields = self.__class__.model_fields
        for attr, value in data.items():
            field = fields.get(attr)
            if field is None:
                continue
            attr_type = field.annotation

            # process simple type
            if attr_type in (int, float, str, bool) and value is not None:
                try:  # try to convert the value to the type of the attribute
                    data[attr] = attr_type(value)
                except (TypeError, ValueError):
                    logger.warning("Invalid value for key: %s, using default", attr)
                    data[attr] = field.get_default(call_default_factory=True)
        super().__init__(**data)


class Message(CustomBaseModel):
    message: str = ""
    status_code: int = 200
