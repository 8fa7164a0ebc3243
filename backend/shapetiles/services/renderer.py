"""Rasterization of styled polygon layers into tile images.

The renderer frames a projected GeoDataFrame to a Mercator bounding box and
draws every intersecting polygon feature onto a transparent RGBA canvas.
Each feature is styled by calling the layer style with the feature's
attributes and the map scale (metres per pixel), then drawn on its own
layer and composited, so that semi-transparent fills of overlapping
features blend and polygon holes stay clear.

Example:
    Render and encode a tile:
        >>> from shapetiles.services import mercator, renderer, styling
        >>> bbox = mercator.tile_to_mercator_at_zoom(0, 0, 0)
        >>> image = renderer.render_map(frame, bbox,
        ...                             styling.PopulationDensityStyle())
        >>> png = renderer.encode_png(image)
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

import shapely
from PIL import Image, ImageChops, ImageDraw
from shapely import geometry as shapely_geometry

from shapetiles.services import mercator, styling

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    import geopandas

TILE_SIZE = 256
TRANSPARENT = (0, 0, 0, 0)

Pixel = tuple[float, float]


def _iter_polygons(
    geom: shapely_geometry.base.BaseGeometry | None,
) -> Iterator[shapely_geometry.Polygon]:
    """Yield the polygons of a geometry; other parts are ignored."""
    if geom is None or geom.is_empty:
        return
    if isinstance(geom, shapely_geometry.Polygon):
        yield geom
    elif hasattr(geom, "geoms"):
        for part in geom.geoms:
            yield from _iter_polygons(part)


def _to_pixels(
    coords: Iterable[Sequence[float]],
    bbox: mercator.BBox,
    scale: float,
) -> list[Pixel]:
    minx, _, _, maxy = bbox
    return [((c[0] - minx) / scale, (maxy - c[1]) / scale) for c in coords]


def _polygon_mask(
    size: tuple[int, int],
    exterior: list[Pixel],
    holes: list[list[Pixel]],
) -> Image.Image:
    """Rasterize one polygon, exterior minus its own holes, to an L mask."""
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    draw.polygon(exterior, fill=255)
    for hole in holes:
        draw.polygon(hole, fill=0)
    return mask


def draw_feature(
    canvas: Image.Image,
    geom: shapely_geometry.base.BaseGeometry,
    style: styling.VectorStyle,
    bbox: mercator.BBox,
    scale: float,
) -> None:
    """Draw one styled feature onto ``canvas``.

    The geometry is clipped to the box grown by a margin wider than the
    outline, so clip edges never show as strokes on the canvas. Each part
    of a multi-part feature is masked on its own, so a hole only clears
    the part it belongs to.
    """
    margin = (max(style.outline_width, 0) + 2) * scale
    minx, miny, maxx, maxy = bbox
    clipped = shapely.clip_by_rect(
        geom, minx - margin, miny - margin, maxx + margin, maxy + margin
    )

    coverage = Image.new("L", canvas.size, 0)
    rings: list[list[Pixel]] = []
    for polygon in _iter_polygons(clipped):
        exterior = _to_pixels(polygon.exterior.coords, bbox, scale)
        if len(exterior) < 3:
            continue
        holes = [
            hole
            for hole in (
                _to_pixels(interior.coords, bbox, scale)
                for interior in polygon.interiors
            )
            if len(hole) >= 3
        ]
        coverage = ImageChops.lighter(
            coverage, _polygon_mask(canvas.size, exterior, holes)
        )
        rings.append(exterior)
        rings.extend(holes)

    layer = Image.new("RGBA", canvas.size, TRANSPARENT)
    layer.paste(style.fill, (0, 0, *canvas.size), coverage)

    if style.outline_width >= 1:
        draw = ImageDraw.Draw(layer)
        for ring in rings:
            draw.line(
                ring,
                fill=style.outline,
                width=style.outline_width,
                joint="curve",
            )

    canvas.alpha_composite(layer)


def render_map(
    frame: geopandas.GeoDataFrame,
    bbox: mercator.BBox,
    style: styling.FeatureStyle,
    tile_size: int = TILE_SIZE,
) -> Image.Image:
    """Render the features of ``frame`` inside ``bbox`` to an RGBA image.

    Args:
        frame: Projected features; attributes are handed to ``style``.
        bbox: Mercator extent framed by the image.
        style: Feature style, called once per feature whose outline can
            reach into ``bbox``.
        tile_size: Edge length of the square image in pixels.

    Returns:
        The rendered image, transparent where no feature was drawn.

    Raises:
        FeatureDataError: If a feature's attributes cannot be styled. The
            tile is abandoned; no partial image is returned.
    """
    canvas = Image.new("RGBA", (tile_size, tile_size), TRANSPARENT)
    scale = mercator.pixel_size(bbox, tile_size)

    # Features just outside the box may still stroke into it.
    ground_width = getattr(
        style, "outline_ground_width", styling.OUTLINE_GROUND_WIDTH
    )
    reach = (styling.outline_width(scale, ground_width) + 2) * scale
    minx, miny, maxx, maxy = bbox
    visible = frame.cx[
        minx - reach : maxx + reach, miny - reach : maxy + reach
    ]
    geometry_column = frame.geometry.name

    for index, row in visible.iterrows():
        try:
            feature_style = style(row, scale)
        except styling.FeatureDataError as exc:
            raise styling.FeatureDataError(
                f"feature {index!r}: {exc}"
            ) from exc
        draw_feature(canvas, row[geometry_column], feature_style, bbox, scale)

    return canvas


def encode_png(image: Image.Image) -> bytes:
    """Encode an image as PNG bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
