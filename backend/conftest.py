"""Pytest configuration exposing the backend package and shared fixtures.

The fixtures build a small world of rectangular "countries", one per
Mercator quadrant except the south-east one, chosen so each quadrant has a
known fill color at zoom 0:

    north-west: population 10000, area 1   -> red
    north-east: population 0, area 100     -> green
    south-west: population 1000, area 0    -> gray (no data)
    south-east: nothing                    -> transparent
"""

from __future__ import annotations

import pathlib
import sys
from typing import TYPE_CHECKING

import geopandas
import pytest
from shapely import geometry as shapely_geometry

BACKEND_ROOT = pathlib.Path(__file__).resolve().parent

if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from shapetiles.catalog import repository  # noqa: E402
from shapetiles.core import config  # noqa: E402
from shapetiles.services import styling, tile_cache, tile_service  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fastapi import testclient


@pytest.fixture
def world_frame() -> geopandas.GeoDataFrame:
    """Three rectangular countries in WGS84 longitude/latitude."""
    return geopandas.GeoDataFrame(
        {
            "NAME": ["Redland", "Greenland", "Nodataland"],
            "POP2005": [10000, 0, 1000],
            "AREA": [1.0, 100.0, 0.0],
        },
        geometry=[
            shapely_geometry.box(-170, 10, -10, 80),
            shapely_geometry.box(10, 10, 170, 80),
            shapely_geometry.box(-170, -80, -10, -10),
        ],
        crs="EPSG:4326",
    )


@pytest.fixture
def layer_repo(
    world_frame: geopandas.GeoDataFrame,
) -> repository.InMemoryLayerRepository:
    return repository.InMemoryLayerRepository({"countries": world_frame})


@pytest.fixture
def service(
    layer_repo: repository.InMemoryLayerRepository,
) -> tile_service.TileService:
    return tile_service.TileService(
        repo=layer_repo,
        styles=styling.build_style_registry(config.Settings()),
        cache=tile_cache.TileCache(max_entries=16),
    )


@pytest.fixture
def client(
    service: tile_service.TileService,
    layer_repo: repository.InMemoryLayerRepository,
) -> Iterator[testclient.TestClient]:
    """TestClient whose tile service and repository use the test world."""
    from fastapi import testclient

    from shapetiles import main
    from shapetiles.api import layers as api_layers
    from shapetiles.api import tiles as api_tiles

    app = main.create_app()
    app.dependency_overrides[api_tiles._get_tile_service] = lambda: service
    app.dependency_overrides[api_layers._get_tile_service] = lambda: service
    app.dependency_overrides[api_layers._get_repo] = lambda: layer_repo
    try:
        yield testclient.TestClient(app)
    finally:
        app.dependency_overrides.clear()
