"""Layer and style discovery API endpoints.

This module provides REST API endpoints listing the layers tiles can be
rendered from, returning a layer's extent, and listing the registered
styles. Extents are given in the tile Mercator plane.

Example:
    List all registered layers:
        >>> response = client.get("/api/layers")
        >>> layers = response.json()
        >>> # Returns: [{"name": "countries", "source": "App_Data/...",
        >>> #            "geom_type": None, ...}]

    Get bounding box for a specific layer:
        >>> response = client.get("/api/layers/countries/bbox")
        >>> bbox = response.json()["bbox"]
        >>> # Format: [minx, miny, maxx, maxy] in Mercator metres
"""

import dataclasses
from typing import Any

import fastapi

from shapetiles.catalog import models as catalog_models
from shapetiles.catalog import repository
from shapetiles.services import tile_service

BBox = tuple[float, float, float, float]

router = fastapi.APIRouter(prefix="/api", tags=["layers"])


def _get_repo() -> repository.LayerRepositoryProtocol:
    """Resolve the layer repository dependency."""
    return repository.get_layer_repository()


def _get_tile_service() -> tile_service.TileService:
    """Resolve the tile service dependency."""
    return tile_service.get_tile_service()


@router.get("/layers")
def list_layers(
    repo: repository.LayerRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> list[dict[str, Any]]:
    """List all registered layers.

    Layers that have not been loaded yet report only their name and source;
    geometry type, CRS, extent and feature count appear after the first tile
    of the layer has been rendered or its bbox requested.

    Args:
        repo: Layer repository (injected via FastAPI Depends).

    Returns:
        List of layer metadata dictionaries.
    """
    return [dataclasses.asdict(layer) for layer in repo.all()]


@router.get("/layers/{name}/bbox")
def get_layer_bbox(
    name: str,
    repo: repository.LayerRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> dict[str, BBox | None]:
    """Get the bounding box of a registered layer.

    Loads the layer if it has not been loaded yet.

    Args:
        name: Layer name.
        repo: Layer repository (injected via FastAPI Depends).

    Returns:
        Dictionary containing the bounding box as [minx, miny, maxx, maxy]
        in Mercator metres, or None for a layer without features.

    Raises:
        HTTPException: If the layer is not found (404 status code).
    """
    try:
        repo.load(name)
    except repository.LayerNotFoundError as exc:
        raise fastapi.HTTPException(
            status_code=404,
            detail="Layer not found",
        ) from exc

    layer: catalog_models.LayerMetadata | None = repo.get(name)
    return {"bbox": layer.bbox if layer else None}


@router.get("/styles")
def list_styles(
    service: tile_service.TileService = fastapi.Depends(_get_tile_service),  # noqa: B008
) -> dict[str, Any]:
    """List the registered style names and the default style."""
    return {"styles": sorted(service.styles), "default": service.default_style}
