import enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, model_validator

# Smaller utility models to support the larger models in schemas.py


class DiscoveryEnum(str, enum.Enum):
    s3 = "s3"
    cmr = "cmr"


class DataType(str, enum.Enum):
    cog = "cog"
    zarr = "zarr"


class TimeDensity(str, enum.Enum):
    year = "year"
    month = "month"
    day = "day"
    hour = "hour"
    minute = "minute"


class DatetimeRange(str, enum.Enum):
    year = "year"
    month = "month"
    day = "day"


class BboxExtent(BaseModel):
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @model_validator(mode="after")
    def check_extent(self):
        # mins must be below maxes
        if self.xmin >= self.xmax or self.ymin >= self.ymax:
            raise ValueError(
                "Invalid extent - xmin must be less than xmax, ymin less than ymax"
            )
        # ys must be within -90 and 90, x between -180 and 180
        if self.xmin < -180 or self.xmax > 180 or self.ymin < -90 or self.ymax > 90:
            raise ValueError(
                "Invalid extent - coordinates must be within -180, 180 and -90, 90"
            )
        return self

    def as_bbox(self) -> List[float]:
        return [self.xmin, self.ymin, self.xmax, self.ymax]


class TemporalExtent(BaseModel):
    startdate: datetime
    enddate: datetime

    @model_validator(mode="after")
    def check_dates(self):
        if self.startdate >= self.enddate:
            raise ValueError("Invalid extent - startdate must be before enddate")
        return self

    def as_interval(self) -> List[Optional[str]]:
        # most of our data uses the Z suffix for UTC - isoformat() doesn't
        return [
            isoformat_z(self.startdate),
            isoformat_z(self.enddate),
        ]


def isoformat_z(value: datetime) -> str:
    """ISO 8601 string with a `Z` suffix, naive datetimes are taken as UTC"""
    text = value.isoformat()
    if value.tzinfo is None:
        return f"{text}Z"
    return text.replace("+00:00", "Z")
