import functools
import re
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple, Union

import boto3
import httpx
from dateutil.relativedelta import relativedelta

from veda_client.monitoring import logger

# ordered from most to least specific, the first pattern with a match wins
DATE_REGEX_STRATEGIES = [
    (r"_(\d{4}-\d{2}-\d{2})(?![\d])", "%Y-%m-%d"),
    (r"_(\d{8})(?![\d])", "%Y%m%d"),
    (r"_(\d{4}-\d{2})(?![-\d])", "%Y-%m"),
    (r"_(\d{6})(?![\d])", "%Y%m"),
    (r"_(\d{4})(?![\d])", "%Y"),
]

VALID_TIME_DENSITIES = ("year", "month", "day", "hour", "minute")

DateTriple = Tuple[Optional[datetime], Optional[datetime], Optional[datetime]]


def time_density_is_valid(is_periodic: bool, time_density: Union[str, None]):
    """
    Ensure that time_density is valid based on the value of is_periodic
    """
    if is_periodic and not time_density:
        raise ValueError("If is_periodic is true, time_density must be set.")

    if not is_periodic and time_density:
        raise ValueError("If is_periodic is false, time_density must be null.")

    if time_density and str(getattr(time_density, "value", time_density)) not in (
        VALID_TIME_DENSITIES
    ):
        raise ValueError(
            f"Invalid time_density '{time_density}', "
            f"expected one of {', '.join(VALID_TIME_DENSITIES)}"
        )


def cog_default_exists(item_assets: Dict):
    """
    Ensures `cog_default` key exists in item_assets in a collection
    """
    try:
        item_assets["cog_default"]
    except (KeyError, TypeError):
        raise ValueError("Collection doesn't have a default COG asset")


def calculate_date_range(
    date: datetime, datetime_range: str
) -> Tuple[datetime, datetime]:
    """Widen a date to the year, month or day containing it"""
    if datetime_range == "year":
        start = datetime(date.year, 1, 1)
        end = start + relativedelta(years=1)
    elif datetime_range == "month":
        start = datetime(date.year, date.month, 1)
        end = start + relativedelta(months=1)
    elif datetime_range == "day":
        start = datetime(date.year, date.month, date.day)
        end = start + relativedelta(days=1)
    else:
        raise ValueError(
            f"Invalid datetime_range '{datetime_range}', expected year, month or day"
        )
    return start, end - timedelta(seconds=1)


def extract_dates(filename: str, datetime_range: Optional[str]) -> DateTriple:
    """
    Extracts start & end or single date string from filename.

    Returns a (start_datetime, end_datetime, single_datetime) tuple. A
    datetime_range widens the extracted date to the enclosing period and
    clears the single datetime.
    """
    dates = []
    for pattern, dateformat in DATE_REGEX_STRATEGIES:
        dates_found = re.findall(pattern, filename)
        if not dates_found:
            continue
        for date_str in dates_found:
            dates.append(datetime.strptime(date_str, dateformat))
        break

    if len(dates) > 2:
        raise ValueError(f"More than 2 dates found in {filename}")

    if not dates:
        if datetime_range:
            raise ValueError(f"No date found in {filename}")
        return None, None, None

    start_datetime, end_datetime, single_datetime = None, None, None
    if len(dates) == 1:
        single_datetime = dates[0]
    else:
        start_datetime, end_datetime = sorted(dates)

    if datetime_range:
        range_start, range_end = calculate_date_range(
            single_datetime or start_datetime, datetime_range
        )
        if end_datetime is not None:
            _, range_end = calculate_date_range(end_datetime, datetime_range)
        return range_start, range_end, None

    return start_datetime, end_datetime, single_datetime


@functools.lru_cache
def s3_bucket_object_is_accessible(
    bucket: str, prefix: str, zarr_store: Union[str, None] = None
):
    """
    Ensure we can send HEAD requests to S3 objects in bucket.
    """
    client = boto3.client("s3")
    prefix = f"{prefix}{zarr_store}" if zarr_store else prefix
    try:
        result = client.list_objects(Bucket=bucket, Prefix=prefix, MaxKeys=2)
    except client.exceptions.NoSuchBucket:
        raise ValueError("Bucket doesn't exist.")
    except client.exceptions.ClientError as e:
        raise ValueError(f"Access denied: {e.response['Error']['Message']}")
    content = result.get("Contents", [])
    if len(content) < 1:
        raise ValueError("No data in bucket/prefix.")
    try:
        client.head_object(Bucket=bucket, Key=content[0].get("Key"))
    except client.exceptions.ClientError as e:
        raise ValueError(f"Asset not accessible: {e.response['Error']['Message']}")
    logger.debug("S3 prefix accessible", extra={"bucket": bucket, "prefix": prefix})
    return True


def url_is_accessible(href: str, client: Optional[httpx.Client] = None):
    """
    Ensure URLs are accessible via HEAD requests.
    """
    http = client or httpx
    try:
        http.head(href, follow_redirects=True).raise_for_status()
    except httpx.HTTPStatusError as e:
        raise ValueError(
            f"Asset not accessible: {e.response.status_code} {e.response.reason_phrase}"
        )
    except httpx.RequestError as e:
        raise ValueError(f"Asset not accessible: {e}")
    return True
