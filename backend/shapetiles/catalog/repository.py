"""Repositories resolving layer names to reprojected polygon datasets."""

from __future__ import annotations

import functools
import logging
import threading
import time
from typing import TYPE_CHECKING, Protocol

import geopandas

from shapetiles.catalog import models as catalog_models
from shapetiles.core import config
from shapetiles.services import mercator

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)


class LayerNotFoundError(LookupError):
    """The requested layer name is not registered."""


class LayerRepositoryProtocol(Protocol):
    """Protocol interface for looking up and loading tile layers.

    ``load`` returns the layer's features in the tile Mercator plane. The
    returned frame is shared between requests and must not be modified.
    """

    def names(self) -> list[str]: ...

    def get(self, name: str) -> catalog_models.LayerMetadata | None: ...

    def all(self) -> Iterable[catalog_models.LayerMetadata]: ...

    def load(self, name: str) -> geopandas.GeoDataFrame: ...


def describe(
    name: str,
    source: str,
    frame: geopandas.GeoDataFrame,
) -> catalog_models.LayerMetadata:
    """Build layer metadata from a projected frame."""
    if len(frame):
        geom_type = str(frame.geom_type.mode().iloc[0])
        minx, miny, maxx, maxy = (float(v) for v in frame.total_bounds)
        bbox: catalog_models.BBox | None = (minx, miny, maxx, maxy)
    else:
        geom_type = None
        bbox = None
    return catalog_models.LayerMetadata(
        name=name,
        source=source,
        geom_type=geom_type,
        crs=frame.crs.to_string() if frame.crs is not None else None,
        bbox=bbox,
        feature_count=len(frame),
    )


class InMemoryLayerRepository(LayerRepositoryProtocol):
    """Layers held as GeoDataFrames in memory.

    Frames are given in geographic coordinates and projected when added.
    Suitable for tests and local development.
    """

    def __init__(
        self,
        frames: Mapping[str, geopandas.GeoDataFrame] | None = None,
        earth_radius: float = mercator.EARTH_RADIUS,
    ) -> None:
        self.earth_radius = earth_radius
        self._frames: dict[str, geopandas.GeoDataFrame] = {}
        self._metadata: dict[str, catalog_models.LayerMetadata] = {}
        for name, frame in (frames or {}).items():
            self.add(name, frame)

    def add(
        self,
        name: str,
        frame: geopandas.GeoDataFrame,
        source: str = "memory",
    ) -> catalog_models.LayerMetadata:
        """Project and store a layer, replacing any layer of the same name.

        Args:
            name: Layer name.
            frame: Features in a geographic coordinate system.
            source: Free-form description of where the data came from.

        Returns:
            Metadata of the stored layer.
        """
        projected = mercator.project_frame(frame, self.earth_radius)
        self._frames[name] = projected
        self._metadata[name] = describe(name, source, projected)
        return self._metadata[name]

    def names(self) -> list[str]:
        return list(self._frames)

    def get(self, name: str) -> catalog_models.LayerMetadata | None:
        return self._metadata.get(name)

    def all(self) -> Iterable[catalog_models.LayerMetadata]:
        return self._metadata.values()

    def load(self, name: str) -> geopandas.GeoDataFrame:
        try:
            return self._frames[name]
        except KeyError as exc:
            raise LayerNotFoundError(f"Layer not found: {name}") from exc


class ShapefileLayerRepository(LayerRepositoryProtocol):
    """Layers read from the shapefiles named in the settings.

    Each shapefile is read and reprojected on first use, then kept for the
    lifetime of the process. Loading is serialized by a lock so concurrent
    first requests read the file once.
    """

    def __init__(self, settings: config.Settings) -> None:
        """Initialize the repository from settings.

        Args:
            settings: Application settings naming the layer shapefiles and
                the earth radius of the projection.
        """
        self.settings = settings
        self._sources: dict[str, pathlib.Path] = settings.layer_sources()
        self._frames: dict[str, geopandas.GeoDataFrame] = {}
        self._metadata: dict[str, catalog_models.LayerMetadata] = {
            name: catalog_models.LayerMetadata(name=name, source=str(path))
            for name, path in self._sources.items()
        }
        self._lock = threading.Lock()

    def names(self) -> list[str]:
        return list(self._sources)

    def get(self, name: str) -> catalog_models.LayerMetadata | None:
        return self._metadata.get(name)

    def all(self) -> Iterable[catalog_models.LayerMetadata]:
        return list(self._metadata.values())

    def load(self, name: str) -> geopandas.GeoDataFrame:
        """Return the projected features of a layer, reading it if needed.

        Raises:
            LayerNotFoundError: If the name is not configured.
            Any error from the shapefile reader (missing or corrupt file)
            propagates unchanged.
        """
        if name not in self._sources:
            raise LayerNotFoundError(f"Layer not found: {name}")
        with self._lock:
            frame = self._frames.get(name)
            if frame is not None:
                return frame

            source = self._sources[name]
            started = time.perf_counter()
            frame = mercator.project_frame(
                geopandas.read_file(source), self.settings.earth_radius
            )
            self._frames[name] = frame
            self._metadata[name] = describe(name, str(source), frame)
            logger.info(
                "loaded layer %s from %s: %d features in %.2fs",
                name,
                source,
                len(frame),
                time.perf_counter() - started,
            )
            return frame


@functools.lru_cache
def get_layer_repository() -> LayerRepositoryProtocol:
    """Return the process-wide repository built from the cached settings."""
    return ShapefileLayerRepository(config.get_settings())
