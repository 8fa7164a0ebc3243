"""Unit tests for polygon rasterization and PNG encoding.

These tests render small projected frames onto tiles and inspect pixels:
fills carry the style color and alpha, outlines appear once the map scale
is fine enough, holes stay transparent, features outside the box are not
styled, and malformed attributes abort the tile.

See Also:
    - backend/shapetiles/services/renderer.py for implementation.
"""

from __future__ import annotations

import io
from typing import Any

import geopandas
import pytest
from PIL import Image
from shapely import geometry as shapely_geometry

from shapetiles.services import mercator, renderer, styling

# 2560 m across 256 px: 10 m per pixel, a 5 px outline.
BBOX = (0.0, 0.0, 2560.0, 2560.0)
GREEN_FILL = (0, 128, 0, 180)
BLACK = (0, 0, 0, 255)


def _frame(geoms: list[Any], **columns: list[Any]) -> geopandas.GeoDataFrame:
    return geopandas.GeoDataFrame(
        columns, geometry=geoms, crs=mercator.mercator_crs()
    )


def _assert_rgba_close(actual: tuple[int, ...], expected: tuple[int, ...]) -> None:
    assert len(actual) == len(expected)
    for a, e in zip(actual, expected):
        assert abs(a - e) <= 1, (actual, expected)


def test_render_fill_and_outline() -> None:
    """Pixel box x 50..200, y 56..206 is filled and stroked."""
    frame = _frame(
        [shapely_geometry.box(500, 500, 2000, 2000)],
        POP2005=[0],
        AREA=[100.0],
    )
    image = renderer.render_map(
        frame, BBOX, styling.PopulationDensityStyle()
    )

    assert image.size == (256, 256)
    assert image.mode == "RGBA"
    _assert_rgba_close(image.getpixel((125, 130)), GREEN_FILL)
    assert image.getpixel((50, 130)) == BLACK
    assert image.getpixel((125, 206)) == BLACK
    assert image.getpixel((20, 20)) == (0, 0, 0, 0)


def test_coarse_scale_draws_no_outline() -> None:
    """Below half a pixel the outline disappears."""
    bbox = (0.0, 0.0, 256000.0, 256000.0)  # 1000 m per pixel
    frame = _frame(
        [shapely_geometry.box(0, 0, 128000, 128000)],
        POP2005=[0],
        AREA=[100.0],
    )
    image = renderer.render_map(frame, bbox, styling.PopulationDensityStyle())
    _assert_rgba_close(image.getpixel((5, 200)), GREEN_FILL)
    _assert_rgba_close(image.getpixel((120, 200)), GREEN_FILL)
    assert image.getpixel((135, 200)) == (0, 0, 0, 0)
    assert image.getpixel((60, 120)) == (0, 0, 0, 0)


def test_holes_stay_transparent() -> None:
    outer = [(500, 500), (2000, 500), (2000, 2000), (500, 2000)]
    hole = [(1000, 1000), (1500, 1000), (1500, 1500), (1000, 1500)]
    frame = _frame(
        [shapely_geometry.Polygon(outer, [hole])],
        POP2005=[0],
        AREA=[100.0],
    )
    image = renderer.render_map(
        frame, BBOX, styling.PopulationDensityStyle()
    )
    assert image.getpixel((125, 131)) == (0, 0, 0, 0)
    _assert_rgba_close(image.getpixel((70, 190)), GREEN_FILL)


def test_multipolygon_parts_are_drawn() -> None:
    frame = _frame(
        [
            shapely_geometry.MultiPolygon(
                [
                    shapely_geometry.box(0, 0, 1000, 1000),
                    shapely_geometry.box(1500, 1500, 2560, 2560),
                ]
            )
        ],
        POP2005=[0],
        AREA=[100.0],
    )
    image = renderer.render_map(
        frame, BBOX, styling.PopulationDensityStyle()
    )
    _assert_rgba_close(image.getpixel((50, 206)), GREEN_FILL)
    _assert_rgba_close(image.getpixel((206, 50)), GREEN_FILL)
    assert image.getpixel((125, 128)) == (0, 0, 0, 0)


@pytest.mark.parametrize("island_first", [True, False])
def test_island_inside_lake_survives_part_order(island_first: bool) -> None:
    """A hole of one part never clears another part of the same feature."""
    lake_shore = shapely_geometry.Polygon(
        [(200, 200), (2360, 200), (2360, 2360), (200, 2360)],
        [[(800, 800), (1760, 800), (1760, 1760), (800, 1760)]],
    )
    island = shapely_geometry.box(1100, 1100, 1460, 1460)
    parts = [island, lake_shore] if island_first else [lake_shore, island]
    frame = _frame(
        [shapely_geometry.MultiPolygon(parts)],
        POP2005=[0],
        AREA=[100.0],
    )
    image = renderer.render_map(
        frame, BBOX, styling.PopulationDensityStyle()
    )
    _assert_rgba_close(image.getpixel((128, 128)), GREEN_FILL)
    assert image.getpixel((95, 128)) == (0, 0, 0, 0)
    _assert_rgba_close(image.getpixel((50, 128)), GREEN_FILL)


def test_island_inside_lake_is_order_independent() -> None:
    lake_shore = shapely_geometry.Polygon(
        [(200, 200), (2360, 200), (2360, 2360), (200, 2360)],
        [[(800, 800), (1760, 800), (1760, 1760), (800, 1760)]],
    )
    island = shapely_geometry.box(1100, 1100, 1460, 1460)
    images = [
        renderer.render_map(
            _frame(
                [shapely_geometry.MultiPolygon(parts)],
                POP2005=[0],
                AREA=[100.0],
            ),
            BBOX,
            styling.PopulationDensityStyle(),
        )
        for parts in ([island, lake_shore], [lake_shore, island])
    ]
    assert images[0].tobytes() == images[1].tobytes()


def test_outline_of_neighbouring_feature_reaches_into_tile() -> None:
    """A feature just east of the tile still strokes the tile's edge."""
    bbox = (0.0, 0.0, 256.0, 256.0)  # 1 m per pixel, a 50 px outline
    frame = _frame(
        [shapely_geometry.box(260, 50, 400, 200)],
        POP2005=[0],
        AREA=[100.0],
    )
    image = renderer.render_map(frame, bbox, styling.PopulationDensityStyle())
    assert image.getpixel((250, 128)) == BLACK
    assert image.getpixel((200, 128)) == (0, 0, 0, 0)


def test_features_outside_box_are_not_styled() -> None:
    """Only features intersecting the box reach the style."""
    frame = _frame(
        [
            shapely_geometry.box(500, 500, 2000, 2000),
            shapely_geometry.box(10000, 10000, 12000, 12000),
        ],
        POP2005=[0, "broken"],
        AREA=[100.0, 1.0],
    )
    seen: list[str] = []

    def recording_style(
        attributes: Any, map_scale: float
    ) -> styling.VectorStyle:
        seen.append(str(attributes["POP2005"]))
        assert map_scale == pytest.approx(10.0)
        return styling.VectorStyle(fill=GREEN_FILL)

    renderer.render_map(frame, BBOX, recording_style)  # type: ignore[arg-type]
    assert seen == ["0"]


def test_malformed_feature_aborts_tile() -> None:
    frame = _frame(
        [
            shapely_geometry.box(500, 500, 1000, 1000),
            shapely_geometry.box(1500, 1500, 2000, 2000),
        ],
        POP2005=[0, "abc"],
        AREA=[100.0, 1.0],
    )
    with pytest.raises(styling.FeatureDataError, match="feature 1"):
        renderer.render_map(frame, BBOX, styling.PopulationDensityStyle())


def test_later_features_draw_over_earlier_ones() -> None:
    frame = _frame(
        [
            shapely_geometry.box(0, 0, 2560, 2560),
            shapely_geometry.box(1000, 1000, 1500, 1500),
        ],
        POP2005=[0, 10000],
        AREA=[100.0, 1.0],
    )
    image = renderer.render_map(
        frame, BBOX, styling.PopulationDensityStyle()
    )
    _assert_rgba_close(image.getpixel((30, 30)), GREEN_FILL)
    red, green, _, alpha = image.getpixel((125, 131))
    assert red > 150
    assert green < 60
    assert alpha > 180


def test_encode_png_round_trip() -> None:
    image = Image.new("RGBA", (256, 256), (255, 0, 0, 180))
    data = renderer.encode_png(image)
    assert data[:8] == b"\x89PNG\r\n\x1a\n"
    decoded = Image.open(io.BytesIO(data))
    assert decoded.size == (256, 256)
    assert decoded.convert("RGBA").getpixel((10, 10)) == (255, 0, 0, 180)
