import enum
import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from stac_pydantic import Collection
from stac_pydantic.links import Link
from typing_extensions import Annotated

from veda_client import validators
from veda_client.exceptions import DatasetValidationError
from veda_client.schema_helpers import (
    BboxExtent,
    DataType,
    DatetimeRange,
    TemporalExtent,
    TimeDensity,
)

COLLECTION_ID_PATTERN = re.compile(r"^[a-z0-9]+(?:[-_][a-z0-9]+)*$")


class Link(Link):
    model_config = ConfigDict(extra="allow")


class DashboardCollection(Collection):
    is_periodic: Optional[bool] = Field(default=False, alias="dashboard:is_periodic")
    time_density: Optional[TimeDensity] = Field(
        default=None, alias="dashboard:time_density"
    )
    item_assets: Optional[Dict] = None
    assets: Optional[Dict] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("item_assets")
    @classmethod
    def cog_default_exists(cls, item_assets):
        if item_assets is not None:
            validators.cog_default_exists(item_assets)
        return item_assets

    @model_validator(mode="after")
    def check_time_density(self):
        validators.time_density_is_valid(self.is_periodic, self.time_density)
        return self


class Status(str, enum.Enum):
    @classmethod
    def _missing_(cls, value):
        for member in cls:
            if member.value.lower() == str(value).lower():
                return member
        return cls.unknown

    started = "started"
    queued = "queued"
    failed = "failed"
    succeeded = "succeeded"
    cancelled = "cancelled"
    unknown = "unknown"


class WorkflowExecutionResponse(BaseModel):
    id: str = Field(
        ..., description="ID of the workflow execution in discover step function."
    )
    status: Status = Field(
        ..., description="Status of the workflow execution in discover step function."
    )
    message: Optional[str] = Field(
        None, description="Message returned from the workflow."
    )
    discovered_files: List[str] = Field(
        default_factory=list, description="List of discovered files."
    )


class Ingestion(BaseModel):
    id: str = Field(..., description="ID of the STAC item")
    status: Status = Field(..., description="Status of the ingestion")
    message: Optional[str] = Field(
        None, description="Message returned from the step function."
    )
    created_by: Optional[str] = Field(None, description="User who created the ingestion")
    created_at: Optional[datetime] = Field(
        None, description="Timestamp of ingestion creation"
    )
    updated_at: Optional[datetime] = Field(
        None, description="Timestamp of ingestion update"
    )
    item: Dict[str, Any] = Field(..., description="STAC item to ingest")


class ListIngestionResponse(BaseModel):
    items: List[Ingestion] = Field(
        ..., description="List of STAC items from ingestion."
    )
    next: Optional[str] = Field(None, description="Next token (json) to load")


class WorkflowInputBase(BaseModel):
    collection: str = ""
    upload: Optional[bool] = False
    cogify: Optional[bool] = False
    dry_run: bool = False


class S3Input(WorkflowInputBase):
    discovery: Literal["s3"]
    prefix: str
    bucket: str
    filename_regex: str = r"[\s\S]*"  # default to match all files in prefix
    datetime_range: Optional[DatetimeRange] = None
    start_datetime: Optional[datetime] = None
    end_datetime: Optional[datetime] = None
    single_datetime: Optional[datetime] = None
    zarr_store: Optional[str] = None

    @field_validator("filename_regex")
    @classmethod
    def regex_compiles(cls, filename_regex):
        try:
            re.compile(filename_regex)
        except re.error as e:
            raise ValueError(f"Invalid filename_regex - {e}")
        return filename_regex

    @model_validator(mode="after")
    def check_datetimes(self):
        if (
            self.start_datetime
            and self.end_datetime
            and self.start_datetime > self.end_datetime
        ):
            raise ValueError("start_datetime must be before end_datetime")
        return self

    def matches(self, fname: str) -> bool:
        """Whether an s3 url or key falls under this item's prefix and regex"""
        key = fname.split("://", 1)[-1]
        if fname.startswith("s3://"):
            bucket, _, key = key.partition("/")
            if bucket != self.bucket:
                return False
        return key.startswith(self.prefix) and bool(
            re.search(self.filename_regex, key.split("/")[-1])
        )


class CmrInput(WorkflowInputBase):
    discovery: Literal["cmr"]
    version: Optional[str] = None
    include: Optional[str] = None
    temporal: Optional[List[datetime]] = None
    bounding_box: Optional[List[float]] = None


# allows the construction of models with a list of discriminated unions
ItemUnion = Annotated[Union[S3Input, CmrInput], Field(discriminator="discovery")]


class Dataset(BaseModel):
    collection: str
    title: str
    description: str
    license: str
    is_periodic: Optional[bool] = False
    time_density: Optional[TimeDensity] = None
    links: Optional[List[Link]] = []
    discovery_items: List[ItemUnion]

    # collection id must be all lowercase, with optional - or _ delimiter
    @field_validator("collection")
    @classmethod
    def check_id(cls, collection):
        if not COLLECTION_ID_PATTERN.match(collection):
            raise ValueError(
                "Invalid id - id must be all lowercase, with optional '-' delimiters"
            )
        return collection

    @model_validator(mode="after")
    def check_time_density(self):
        validators.time_density_is_valid(self.is_periodic, self.time_density)
        return self

    @model_validator(mode="after")
    def fill_item_collection(self):
        for item in self.discovery_items:
            if not item.collection:
                item.collection = self.collection
        return self

    def to_payload(self) -> Dict[str, Any]:
        """JSON-compatible body for the workflows API"""
        return self.model_dump(mode="json", exclude_none=True)


class COGDataset(Dataset):
    spatial_extent: BboxExtent
    temporal_extent: TemporalExtent
    sample_files: List[str] = []  # unknown how this will work with CMR
    data_type: Literal["cog"] = "cog"

    @model_validator(mode="after")
    def check_sample_files(self):
        s3_items = [item for item in self.discovery_items if item.discovery == "s3"]
        if not s3_items:
            return self

        # TODO cmr handling/validation
        invalid_fnames = []
        for fname in self.sample_files:
            found_match = False
            for item in s3_items:
                if not item.matches(fname):
                    continue
                if item.datetime_range:
                    try:
                        validators.extract_dates(
                            fname.split("/")[-1], item.datetime_range.value
                        )
                    except ValueError:
                        raise ValueError(
                            f"Invalid sample file - {fname} does not align "
                            "with the provided datetime_range, and a datetime "
                            "could not be extracted."
                        )
                found_match = True
                break
            if not found_match:
                invalid_fnames.append(fname)
        if invalid_fnames:
            raise ValueError(
                f"Invalid sample files - {invalid_fnames} do not match any "
                "of the provided prefix/filename_regex combinations."
            )
        return self


class ZarrDataset(Dataset):
    xarray_kwargs: Optional[Dict] = dict()
    x_dimension: Optional[str] = None
    y_dimension: Optional[str] = None
    temporal_dimension: Optional[str] = None
    reference_system: Optional[int] = None
    data_type: Literal["zarr"]

    @field_validator("discovery_items")
    @classmethod
    def only_one_discover_item(cls, discovery_items):
        if len(discovery_items) != 1:
            raise ValueError("Zarr dataset should have exactly one discovery item")
        if not getattr(discovery_items[0], "zarr_store", None):
            raise ValueError(
                "Zarr dataset should include zarr_store in its discovery item"
            )
        return discovery_items


AnyDataset = Union[COGDataset, ZarrDataset]


def load_dataset(source: Union[str, Path, Dict[str, Any]]) -> AnyDataset:
    """
    Load a dataset definition from a dict or a JSON file.

    The model is picked from `data_type`, defaulting to a COG dataset.
    Raises DatasetValidationError with one message per failing field.
    """
    if isinstance(source, dict):
        data = source
    else:
        try:
            data = json.loads(Path(source).read_text())
        except json.JSONDecodeError as e:
            raise DatasetValidationError([f"{source}: invalid JSON - {e}"])

    model = ZarrDataset if data.get("data_type") == DataType.zarr.value else COGDataset
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DatasetValidationError.from_validation_error(e) from e
