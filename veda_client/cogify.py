"""
File preparation: convert gridded data to Cloud Optimized GeoTIFFs and upload them.

Converted files are named `{prefix}_{date}.tif` so that the date can be
recovered at ingestion time (see `validators.extract_dates`).
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import boto3
import rioxarray  # noqa: F401 registers the .rio accessor
import xarray as xr
from rio_cogeo.cogeo import cog_validate

from veda_client.monitoring import logger

PathLike = Union[str, Path]

X_DIMENSIONS = ("lon", "longitude", "x")
Y_DIMENSIONS = ("lat", "latitude", "y")

FILENAME_DATE_FORMATS = {
    "year": "%Y",
    "month": "%Y%m",
    "day": "%Y-%m-%d",
}


def _find_dim(da: xr.DataArray, candidates: Sequence[str]) -> str:
    for name in candidates:
        if name in da.dims:
            return name
    raise ValueError(f"Could not find any of {list(candidates)} in {list(da.dims)}")


def prepare_dataarray(
    da: xr.DataArray,
    x_dim: Optional[str] = None,
    y_dim: Optional[str] = None,
    crs: str = "EPSG:4326",
) -> xr.DataArray:
    """
    Normalize a lon/lat grid for COG output: longitudes in [-180, 180],
    latitudes descending, spatial dims and CRS set.
    """
    x_dim = x_dim or _find_dim(da, X_DIMENSIONS)
    y_dim = y_dim or _find_dim(da, Y_DIMENSIONS)

    if float(da[x_dim].max()) > 180:
        da = da.assign_coords({x_dim: ((da[x_dim] + 180) % 360) - 180}).sortby(x_dim)
    if da[y_dim].size > 1 and float(da[y_dim][0]) < float(da[y_dim][-1]):
        da = da.sortby(y_dim, ascending=False)

    da = da.rio.set_spatial_dims(x_dim=x_dim, y_dim=y_dim)
    if da.rio.crs is None:
        da = da.rio.write_crs(crs)
    return da


def dataarray_to_cog(
    da: xr.DataArray, path: PathLike, compress: str = "DEFLATE", **kwargs
) -> Path:
    """Write a 2D (or single band 3D) DataArray as a COG"""
    extra_dims = [d for d in da.dims if d not in (da.rio.x_dim, da.rio.y_dim)]
    for dim in extra_dims:
        if da.sizes[dim] != 1:
            raise ValueError(
                f"Dimension '{dim}' has {da.sizes[dim]} values, select one before writing"
            )
    if extra_dims:
        da = da.squeeze(extra_dims, drop=True)

    path = Path(path)
    da.rio.to_raster(path, driver="COG", compress=compress, **kwargs)
    logger.info("Wrote COG", extra={"path": str(path)})
    return path


def netcdf_to_cog(
    src: PathLike,
    dst: PathLike,
    variable: str,
    time_index: Optional[int] = None,
    time_dim: str = "time",
) -> Path:
    """Convert one variable (and time step) of a NetCDF file to a COG"""
    with xr.open_dataset(src) as ds:
        da = ds[variable]
        if time_index is not None:
            da = da.isel({time_dim: time_index})
        return dataarray_to_cog(prepare_dataarray(da), dst)


def validate_cog(path: PathLike) -> Tuple[bool, list, list]:
    """Run rio-cogeo validation, returns (is_valid, errors, warnings)"""
    is_valid, errors, warnings = cog_validate(str(path), quiet=True)
    if errors:
        logger.warning("Invalid COG", extra={"path": str(path), "errors": errors})
    return is_valid, errors, warnings


def cog_filename(prefix: str, date: datetime, granularity: str = "day") -> str:
    """`{prefix}_{date}.tif` with the date at the given granularity"""
    try:
        fmt = FILENAME_DATE_FORMATS[granularity]
    except KeyError:
        raise ValueError(
            f"Invalid granularity '{granularity}', expected one of "
            f"{', '.join(FILENAME_DATE_FORMATS)}"
        )
    return f"{prefix}_{date.strftime(fmt)}.tif"


def upload_file(
    path: PathLike, bucket: str, key: Optional[str] = None, client=None
) -> str:
    """Upload a file to S3, returns its s3:// url"""
    path = Path(path)
    key = key or path.name
    client = client or boto3.client("s3")
    client.upload_file(str(path), bucket, key)
    logger.info("Uploaded file", extra={"bucket": bucket, "key": key})
    return f"s3://{bucket}/{key}"
