"""Spherical Mercator tile grid and reprojection helpers.

Tiles follow the Google/Bing "slippy map" convention: tile (0, 0) is the
north-west corner of the world and ``y`` grows southward. At zoom level
``z`` the projected square of side ``2 * pi * R`` is divided into
``2**z * 2**z`` tiles.

The earth radius only sets the unit scale of the projected plane. Any value
works for tiling, but the grid and the reprojection must use the same one,
which is why every helper here takes it as a parameter.

Example:
    Compute the extent of the north-east tile at zoom 1:
        >>> from shapetiles.services import mercator
        >>> mercator.tile_to_mercator_at_zoom(1, 0, 1)
        (0.0, 0.0, 20015086.79602057, 20015086.79602057)
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import pyproj

if TYPE_CHECKING:
    import geopandas

BBox = tuple[float, float, float, float]

EARTH_RADIUS = 6371000.0

# Latitude whose Mercator northing is pi * R, the edge of the square world.
MAX_LATITUDE = math.degrees(math.atan(math.sinh(math.pi)))

GEOGRAPHIC_CRS = "EPSG:4326"


def tile_to_mercator_at_zoom(
    tile_x: int,
    tile_y: int,
    zoom: int,
    earth_radius: float = EARTH_RADIUS,
) -> BBox:
    """Return the Mercator bounding box of a tile.

    No range check is made on the tile indices. Indices outside
    ``[0, 2**zoom)`` give a well-formed box lying outside the world square.

    Args:
        tile_x: Tile column, counted eastward from the antimeridian.
        tile_y: Tile row, counted southward from the northern edge.
        zoom: Zoom level, ``>= 0``.
        earth_radius: Sphere radius in metres.

    Returns:
        ``(minx, miny, maxx, maxy)`` in projected metres.
    """
    circumference = earth_radius * 2.0 * math.pi
    half_circumference = circumference / 2
    span = circumference / (1 << zoom)

    return (
        tile_x * span - half_circumference,
        half_circumference - (tile_y + 1) * span,
        (tile_x + 1) * span - half_circumference,
        half_circumference - tile_y * span,
    )


def pixel_size(bbox: BBox, tile_size: int) -> float:
    """Return the ground distance covered by one pixel of a framed tile."""
    minx, _, maxx, _ = bbox
    return (maxx - minx) / tile_size


def mercator_crs(earth_radius: float = EARTH_RADIUS) -> pyproj.CRS:
    """Build a spherical Mercator CRS on a sphere of the given radius.

    Origin at (0, 0), no false easting or northing, metre units, with east
    and north axes. With ``earth_radius=6378137`` this is EPSG:3857.
    """
    return pyproj.CRS.from_proj4(
        f"+proj=merc +a={earth_radius!r} +b={earth_radius!r} +lat_ts=0 "
        "+lon_0=0 +x_0=0 +y_0=0 +k=1 +units=m +no_defs +type=crs"
    )


def spherical_geographic_crs(
    earth_radius: float = EARTH_RADIUS,
) -> pyproj.CRS:
    """Longitude/latitude in degrees on a sphere of the given radius."""
    return pyproj.CRS.from_proj4(
        f"+proj=longlat +a={earth_radius!r} +b={earth_radius!r} "
        "+no_defs +type=crs"
    )


def project_frame(
    frame: geopandas.GeoDataFrame,
    earth_radius: float = EARTH_RADIUS,
) -> geopandas.GeoDataFrame:
    """Reproject a geographic dataset into the tile Mercator plane.

    Geometries are first clipped to the latitude band the Mercator square
    covers; polar vertices would otherwise project to infinity. Features
    left empty by the clip are dropped. A frame without a CRS is taken to
    be WGS84 longitude/latitude.

    Args:
        frame: Dataset in a geographic coordinate system.
        earth_radius: Sphere radius of the target projection.

    Returns:
        A new GeoDataFrame in ``mercator_crs(earth_radius)``.
    """
    if frame.crs is None:
        frame = frame.set_crs(GEOGRAPHIC_CRS)
    elif not frame.crs.is_geographic:
        frame = frame.to_crs(GEOGRAPHIC_CRS)

    clipped = frame.copy()
    clipped[frame.geometry.name] = frame.geometry.clip_by_rect(
        -180.0, -MAX_LATITUDE, 180.0, MAX_LATITUDE
    )
    clipped = clipped[~clipped.geometry.is_empty & clipped.geometry.notna()]
    # Longitude/latitude are reinterpreted on the sphere itself; PROJ
    # refuses to transform between bodies of different radii.
    clipped = clipped.set_crs(
        spherical_geographic_crs(earth_radius), allow_override=True
    )
    return clipped.to_crs(mercator_crs(earth_radius))
