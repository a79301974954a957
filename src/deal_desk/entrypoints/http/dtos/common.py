from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

MONEY_PATTERN = r"^\d+(\.\d{1,2})?$"
RATE_PATTERN = r"^0(\.\d{1,4})?$"


def _number_to_decimal_string(value: Any) -> Any:
    # JSON numbers go through str() first so binary floats never become Decimals
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(Decimal(str(value)))
    return value


# Decimal strings ("500.00") and JSON numbers (500) are both accepted; the
# DTO always holds the string form.
MoneyInput = Annotated[
    str, BeforeValidator(_number_to_decimal_string), Field(pattern=MONEY_PATTERN)
]
RateInput = Annotated[
    str, BeforeValidator(_number_to_decimal_string), Field(pattern=RATE_PATTERN)
]


class CamelModel(BaseModel):
    """Base for all deal DTOs: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def money_field(description: str, example: str = "500.00", **kwargs: Any) -> Any:
    """Money with at most two decimal places, as a decimal string or a JSON number."""
    return Field(description=description, examples=[example], **kwargs)
