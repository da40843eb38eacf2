"""Test suite for validation helpers."""

from datetime import datetime
from unittest.mock import MagicMock, patch

import httpx
import pytest
from botocore.exceptions import ClientError

from veda_client import validators


class TestExtractDates:
    @pytest.mark.parametrize(
        "filename,datetime_range,expected",
        [
            (
                "OMI_trno2_0.10x0.10_201604_Col3_V4.nc.tif",
                None,
                (None, None, datetime(2016, 4, 1)),
            ),
            (
                "OMI_trno2_0.10x0.10_201604_Col3_V4.nc.tif",
                "month",
                (datetime(2016, 4, 1), datetime(2016, 4, 30, 23, 59, 59), None),
            ),
            (
                "nightlights_2020-02-29.tif",
                "day",
                (datetime(2020, 2, 29), datetime(2020, 2, 29, 23, 59, 59), None),
            ),
            (
                "emissions_20190704.tif",
                "year",
                (datetime(2019, 1, 1), datetime(2019, 12, 31, 23, 59, 59), None),
            ),
            (
                "biomass_2010.tif",
                None,
                (None, None, datetime(2010, 1, 1)),
            ),
            (
                "change_2020-12-01_2019-01-01.tif",
                None,
                (datetime(2019, 1, 1), datetime(2020, 12, 1), None),
            ),
            (
                "precip_2021-05.tif",
                "month",
                (datetime(2021, 5, 1), datetime(2021, 5, 31, 23, 59, 59), None),
            ),
            ("no_date_here.tif", None, (None, None, None)),
        ],
    )
    def test_extract_dates(self, filename, datetime_range, expected):
        assert validators.extract_dates(filename, datetime_range) == expected

    def test_two_dates_with_range_cover_both_periods(self):
        start, end, single = validators.extract_dates(
            "change_201901_202003.tif", "month"
        )
        assert start == datetime(2019, 1, 1)
        assert end == datetime(2020, 3, 31, 23, 59, 59)
        assert single is None

    def test_too_many_dates(self):
        with pytest.raises(ValueError, match="More than 2 dates"):
            validators.extract_dates("a_2019_2020_2021.tif", None)

    def test_range_without_date(self):
        with pytest.raises(ValueError, match="No date found"):
            validators.extract_dates("no_date_here.tif", "month")

    def test_invalid_range(self):
        with pytest.raises(ValueError, match="Invalid datetime_range"):
            validators.extract_dates("a_2019.tif", "week")


class TestTimeDensity:
    @pytest.mark.parametrize(
        "is_periodic,time_density",
        [(True, "month"), (True, "day"), (False, None)],
    )
    def test_valid(self, is_periodic, time_density):
        validators.time_density_is_valid(is_periodic, time_density)

    @pytest.mark.parametrize(
        "is_periodic,time_density",
        [(True, None), (False, "month"), (True, "weekly")],
    )
    def test_invalid(self, is_periodic, time_density):
        with pytest.raises(ValueError):
            validators.time_density_is_valid(is_periodic, time_density)


class TestS3Access:
    @pytest.fixture(autouse=True)
    def setup(self):
        validators.s3_bucket_object_is_accessible.cache_clear()
        self.client = MagicMock()
        self.client.exceptions.NoSuchBucket = type("NoSuchBucket", (Exception,), {})
        self.client.exceptions.ClientError = ClientError
        with patch("veda_client.validators.boto3.client", return_value=self.client):
            yield
        validators.s3_bucket_object_is_accessible.cache_clear()

    def test_accessible(self):
        self.client.list_objects.return_value = {"Contents": [{"Key": "p/a.tif"}]}
        assert validators.s3_bucket_object_is_accessible("bucket", "p/")
        self.client.head_object.assert_called_once_with(Bucket="bucket", Key="p/a.tif")

    def test_zarr_store_appended_to_prefix(self):
        self.client.list_objects.return_value = {"Contents": [{"Key": "p/s.zarr/.zattrs"}]}
        validators.s3_bucket_object_is_accessible("bucket", "p/", "s.zarr")
        self.client.list_objects.assert_called_once_with(
            Bucket="bucket", Prefix="p/s.zarr", MaxKeys=2
        )

    def test_empty_prefix(self):
        self.client.list_objects.return_value = {}
        with pytest.raises(ValueError, match="No data in bucket/prefix"):
            validators.s3_bucket_object_is_accessible("bucket", "empty/")

    def test_missing_bucket(self):
        self.client.list_objects.side_effect = self.client.exceptions.NoSuchBucket()
        with pytest.raises(ValueError, match="Bucket doesn't exist"):
            validators.s3_bucket_object_is_accessible("nope", "p/")

    def test_access_denied(self):
        self.client.list_objects.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
            "ListObjects",
        )
        with pytest.raises(ValueError, match="Access denied: Access Denied"):
            validators.s3_bucket_object_is_accessible("private", "p/")


class TestUrlAccess:
    def client(self, status_code):
        def handler(request):
            assert request.method == "HEAD"
            return httpx.Response(status_code)

        return httpx.Client(transport=httpx.MockTransport(handler))

    def test_accessible(self):
        with self.client(200) as client:
            assert validators.url_is_accessible("https://data.example.com/a.tif", client)

    def test_not_found(self):
        with self.client(404) as client:
            with pytest.raises(ValueError, match="Asset not accessible: 404 Not Found"):
                validators.url_is_accessible("https://data.example.com/a.tif", client)

    def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ValueError, match="connection refused"):
                validators.url_is_accessible("https://data.example.com/a.tif", client)
