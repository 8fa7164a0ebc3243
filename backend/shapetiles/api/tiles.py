"""XYZ tile serving endpoints for population density maps.

This module provides REST API endpoints serving 256x256 PNG tiles in the
Google/Bing XYZ scheme. Tiles are rendered on demand from the layer
catalog's polygon datasets, reprojected to spherical Mercator, styled per
feature and kept in a bounded in-memory cache.

Two request forms are accepted and return identical tiles:

- query parameters, ``/tiles?x=1&y=0&z=1&layer=countries&style=popdens``
- path segments, ``/tiles/countries/1/1/0.png?style=popdens``

Example:
    Request a tile:
        >>> response = client.get("/tiles", params={"x": 1, "y": 0, "z": 1})
        >>> response.headers["content-type"]
        'image/png'

    Use in Leaflet:
        >>> L.tileLayer('http://api/tiles/countries/{z}/{x}/{y}.png')
"""

import fastapi
from fastapi import responses

from shapetiles.catalog import repository
from shapetiles.core import config
from shapetiles.services import styling, tile_service

router = fastapi.APIRouter(prefix="/tiles", tags=["tiles"])

MAX_ZOOM = config.get_settings().max_zoom


def _get_tile_service() -> tile_service.TileService:
    """Resolve the tile service dependency."""
    return tile_service.get_tile_service()


def _render(
    service: tile_service.TileService,
    x: int,
    y: int,
    z: int,
    layer: str | None,
    style: str | None,
) -> responses.Response:
    try:
        data = service.get_tile(x, y, z, layer=layer, style=style)
    except (repository.LayerNotFoundError, styling.StyleNotFoundError) as exc:
        raise fastapi.HTTPException(status_code=404, detail=str(exc)) from exc
    return responses.Response(content=data, media_type="image/png")


@router.get("")
def tile_by_query(
    x: int = fastapi.Query(...),
    y: int = fastapi.Query(...),
    z: int = fastapi.Query(..., ge=0, le=MAX_ZOOM),
    layer: str | None = None,
    style: str | None = None,
    service: tile_service.TileService = fastapi.Depends(_get_tile_service),  # noqa: B008
) -> responses.Response:
    """Render a tile addressed by query parameters.

    Args:
        x: Tile X coordinate (standard XYZ tile X).
        y: Tile Y coordinate (standard XYZ tile Y, 0 at the north).
        z: Zoom level.
        layer: Optional layer name; the default layer when omitted.
        style: Optional style name; the default style when omitted.
        service: Tile service (injected via FastAPI Depends).

    Returns:
        PNG image response. Content-Type is image/png.

    Raises:
        HTTPException: If the layer or style is unknown (404). Missing or
            non-integer x, y, z are rejected by FastAPI with 422.
    """
    return _render(service, x, y, z, layer, style)


@router.get("/cache/stats")
def cache_stats(
    service: tile_service.TileService = fastapi.Depends(_get_tile_service),  # noqa: B008
) -> dict[str, int | float]:
    """Return tile cache size, capacity and hit statistics."""
    return service.cache.stats()


@router.get("/{layer}/{z}/{x}/{y}.png")
def tile_by_path(
    layer: str,
    z: int = fastapi.Path(..., ge=0, le=MAX_ZOOM),
    x: int = fastapi.Path(...),
    y: int = fastapi.Path(...),
    style: str | None = None,
    service: tile_service.TileService = fastapi.Depends(_get_tile_service),  # noqa: B008
) -> responses.Response:
    """Render a tile addressed by XYZ path segments.

    Args:
        layer: Layer name.
        z: Zoom level.
        x: Tile X coordinate.
        y: Tile Y coordinate.
        style: Optional style name; the default style when omitted.
        service: Tile service (injected via FastAPI Depends).

    Returns:
        PNG image response. Content-Type is image/png.
    """
    return _render(service, x, y, z, layer, style)
