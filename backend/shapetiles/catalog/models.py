"""Data models for layer metadata.

This module defines the structure describing a tile layer: the dataset it
is read from and, once the dataset has been loaded, its geometry type,
coordinate system, extent and size. Extents are given in the tile
Mercator plane.

Example:
    Metadata for a layer that has not been loaded yet:
        >>> from shapetiles.catalog.models import LayerMetadata
        >>> layer = LayerMetadata(
        ...     name="countries",
        ...     source="App_Data/world_countries_boundary_file_world_2002.shp",
        ... )
        >>> layer.loaded
        False
"""

from __future__ import annotations

import dataclasses

BBox = tuple[float, float, float, float]


@dataclasses.dataclass
class LayerMetadata:
    """Represents a polygon layer the tile service knows about.

    Attributes:
        name: Layer name used in tile requests.
        source: Shapefile path or other dataset identifier.
        geom_type: Dominant geometry type ("Polygon", "MultiPolygon", ...).
        crs: Projected coordinate system of the loaded layer, as PROJ text.
        bbox: Extent as (minx, miny, maxx, maxy) in projected metres.
        feature_count: Number of features kept after reprojection.
    """

    name: str
    source: str
    geom_type: str | None = None
    crs: str | None = None
    bbox: BBox | None = None
    feature_count: int | None = None

    @property
    def loaded(self) -> bool:
        return self.feature_count is not None
