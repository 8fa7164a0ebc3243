"""Tile request orchestration: layer and style lookup, caching, rendering.

Example:
    Serve a tile through the configured service:
        >>> from shapetiles.services import tile_service
        >>> service = tile_service.get_tile_service()
        >>> png = service.get_tile(x=1, y=0, z=1)
        >>> png[:4]
        b'\\x89PNG'
"""

from __future__ import annotations

import functools
import logging
import time
from typing import TYPE_CHECKING

from shapetiles.catalog import repository
from shapetiles.core import config
from shapetiles.services import mercator, renderer, styling, tile_cache

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


class TileService:
    """Renders and caches PNG tiles of the catalog's layers.

    Attributes:
        repo: Layer repository resolving layer names to projected frames.
        styles: Registered styles by name.
        cache: Cache of encoded tiles.
        default_layer: Layer used when a request names none.
        default_style: Style used when a request names none.
        tile_size: Edge length of rendered tiles in pixels.
        earth_radius: Sphere radius of the tile grid; must match the one the
            repository projects with.
    """

    def __init__(
        self,
        repo: repository.LayerRepositoryProtocol,
        styles: Mapping[str, styling.FeatureStyle],
        cache: tile_cache.TileCache,
        default_layer: str = "countries",
        default_style: str = "popdens",
        tile_size: int = renderer.TILE_SIZE,
        earth_radius: float = mercator.EARTH_RADIUS,
    ) -> None:
        self.repo = repo
        self.styles = styles
        self.cache = cache
        self.default_layer = default_layer
        self.default_style = default_style
        self.tile_size = tile_size
        self.earth_radius = earth_radius

    def resolve_layer(self, layer: str | None) -> str:
        """Return the layer name to render, checking it is registered.

        Raises:
            LayerNotFoundError: If the layer is unknown.
        """
        name = layer or self.default_layer
        if name not in self.repo.names():
            raise repository.LayerNotFoundError(f"Layer not found: {name}")
        return name

    def get_tile(
        self,
        x: int,
        y: int,
        z: int,
        layer: str | None = None,
        style: str | None = None,
    ) -> bytes:
        """Return the PNG tile at ``(x, y, z)``, rendering it on a miss.

        Args:
            x: Tile column.
            y: Tile row, counted from the north.
            z: Zoom level.
            layer: Layer name; the default layer when empty.
            style: Style name; the default style when empty.

        Returns:
            PNG-encoded tile bytes. Repeated calls with the same arguments
            return the cached bytes without rendering again.

        Raises:
            LayerNotFoundError: If the layer is unknown.
            StyleNotFoundError: If the style is unknown.
            FeatureDataError: If a feature in the tile has malformed
                attributes. Nothing is cached in that case.
        """
        layer_name = self.resolve_layer(layer)
        feature_style = styling.resolve_style(
            self.styles, style, self.default_style
        )
        key = tile_cache.cache_key(layer_name, feature_style.name, x, y, z)

        data = self.cache.get(key)
        if data is not None:
            logger.debug("cache hit %s", key)
            return data

        started = time.perf_counter()
        frame = self.repo.load(layer_name)
        bbox = mercator.tile_to_mercator_at_zoom(x, y, z, self.earth_radius)
        image = renderer.render_map(frame, bbox, feature_style, self.tile_size)
        data = renderer.encode_png(image)
        self.cache.put(key, data)
        logger.info(
            "rendered %s (%d bytes) in %.1f ms",
            key,
            len(data),
            (time.perf_counter() - started) * 1000,
        )
        return data


@functools.lru_cache
def get_tile_service() -> TileService:
    """Return the process-wide tile service built from the cached settings."""
    settings = config.get_settings()
    return TileService(
        repo=repository.get_layer_repository(),
        styles=styling.build_style_registry(settings),
        cache=tile_cache.TileCache(settings.cache_max_entries),
        default_layer=settings.default_layer,
        default_style=settings.default_style,
        tile_size=settings.tile_size,
        earth_radius=settings.earth_radius,
    )
