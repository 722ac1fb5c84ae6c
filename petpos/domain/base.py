"""
Shared pieces for domain models

Records are stored and exported with camelCase keys (createdAt, orderNumber,
productId) so backups stay compatible with the browser version of the POS;
Python code uses the snake_case attribute names.
"""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel


def _money_to_json(value: Decimal) -> Union[int, float]:
    """VND amounts are whole numbers; keep them as JSON integers"""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Non-negative amount of money, exact in Python, a plain number in JSON
Money = Annotated[Decimal, Field(ge=0), PlainSerializer(_money_to_json, when_used="json")]


def local_now() -> datetime:
    """Current time as an aware datetime in the local timezone"""
    return datetime.now().astimezone()


def to_local(value: datetime) -> datetime:
    """Aware local datetime; naive values are taken as local time"""
    return value.astimezone()


# Timestamp that always carries the local UTC offset once validated
LocalDatetime = Annotated[datetime, AfterValidator(to_local)]


class RecordModel(BaseModel):
    """Base for everything persisted in the Record Store"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_record(self) -> dict:
        """JSON-ready dict with camelCase keys, as stored and exported"""
        return self.model_dump(mode="json", by_alias=True)
