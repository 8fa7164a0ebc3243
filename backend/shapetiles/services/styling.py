"""Thematic styles for polygon features.

A style is a callable ``style(attributes, map_scale) -> VectorStyle``. The
renderer calls it once per feature with the feature's attribute record and
the current map scale in metres per pixel. The scale is passed explicitly,
so styles hold no reference to the map being drawn.

Two styles are registered:

- ``popdens``: fill colored by population density on a green, yellow, red
  gradient; gray where the feature has no usable area.
- ``uniform``: a single fill color for every feature.

Both draw a black outline whose pixel width keeps it at a constant ground
width across zoom levels.

Example:
    Style a feature at a map scale of 10 metres per pixel:
        >>> from shapetiles.services import styling
        >>> style = styling.PopulationDensityStyle()
        >>> style({"POP2005": 0, "AREA": 100}, map_scale=10.0)
        VectorStyle(fill=(0, 128, 0, 180), outline=(0, 0, 0, 255), outline_width=5)
"""

from __future__ import annotations

import bisect
import dataclasses
import math
from typing import TYPE_CHECKING, Any, Protocol

from PIL import ImageColor

if TYPE_CHECKING:
    from collections.abc import Mapping

    from shapetiles.core import config

RGB = tuple[int, int, int]
RGBA = tuple[int, int, int, int]

FILL_ALPHA = 180
OUTLINE_GROUND_WIDTH = 50.0
BLACK: RGBA = (0, 0, 0, 255)
NO_DATA_COLOR: RGB = ImageColor.getrgb("gray")[:3]  # type: ignore[assignment]


class FeatureDataError(ValueError):
    """A feature attribute is missing or cannot be read as a number.

    Raised while styling a feature. The renderer lets it abort the whole
    tile rather than drawing a tile with silently missing features.
    """


class StyleNotFoundError(LookupError):
    """The requested style name is not registered."""


@dataclasses.dataclass(frozen=True)
class VectorStyle:
    """Drawing instructions for one polygon feature.

    Outlines are stroked with round joins. A width below one pixel means
    no outline is drawn.
    """

    fill: RGBA
    outline: RGBA = BLACK
    outline_width: int = 1


class FeatureStyle(Protocol):
    """Callable computing the VectorStyle of a feature."""

    name: str

    def __call__(
        self, attributes: Mapping[str, Any], map_scale: float
    ) -> VectorStyle: ...


def _named(color: str) -> RGB:
    return ImageColor.getrgb(color)[:3]  # type: ignore[return-value]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclasses.dataclass(frozen=True)
class ColorBlend:
    """Piecewise linear color gradient over positions in ``[0, 1]``.

    Attributes:
        colors: Color at each stop.
        positions: Increasing stop positions, first 0.0 and last 1.0.
    """

    colors: tuple[RGB, ...]
    positions: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.colors) != len(self.positions) or len(self.colors) < 2:
            raise ValueError("a blend needs one position per color, >= 2")
        if list(self.positions) != sorted(self.positions):
            raise ValueError("blend positions must be increasing")

    @classmethod
    def three_colors(cls, first: RGB, middle: RGB, last: RGB) -> ColorBlend:
        """Blend ``first`` at 0.0, ``middle`` at 0.5 and ``last`` at 1.0."""
        return cls(colors=(first, middle, last), positions=(0.0, 0.5, 1.0))

    def get_color(self, position: float) -> RGB:
        """Interpolate each channel linearly between the enclosing stops.

        Positions outside the stop range take the nearest end color.
        """
        if position <= self.positions[0]:
            return self.colors[0]
        if position >= self.positions[-1]:
            return self.colors[-1]

        upper = bisect.bisect_right(self.positions, position)
        lower = upper - 1
        start, end = self.positions[lower], self.positions[upper]
        frac = (position - start) / (end - start)
        low, high = self.colors[lower], self.colors[upper]
        return tuple(  # type: ignore[return-value]
            _round_half_up(a + (b - a) * frac) for a, b in zip(low, high)
        )


GREEN_YELLOW_RED = ColorBlend.three_colors(
    _named("green"), _named("yellow"), _named("red")
)


def coerce_number(attributes: Mapping[str, Any], field: str) -> float:
    """Read a numeric attribute.

    Null values (``None`` or NaN) read as 0.0. A missing field or a value
    that is not a number raises FeatureDataError.
    """
    try:
        value = attributes[field]
    except KeyError as exc:
        raise FeatureDataError(f"missing attribute {field!r}") from exc
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise FeatureDataError(
            f"attribute {field!r} is not numeric: {value!r}"
        ) from exc
    if math.isnan(number):
        return 0.0
    return number


def outline_width(
    map_scale: float, ground_width: float = OUTLINE_GROUND_WIDTH
) -> int:
    """Return the pixel width drawing ``ground_width`` map units.

    Halves round up, so a scale of 20 gives a 50 / 20 = 2.5 -> 3 px outline.
    """
    if map_scale <= 0:
        raise ValueError(f"map scale must be positive, got {map_scale!r}")
    return _round_half_up(ground_width / map_scale)


@dataclasses.dataclass(frozen=True)
class PopulationDensityStyle:
    """Colors a feature by the square root of its population density.

    ``density_normalization`` is the square-rooted density shown as full
    red. 70 suits country-level data with areas in square kilometres; it
    is a tunable, not a physical constant.
    """

    name: str = "popdens"
    population_field: str = "POP2005"
    area_field: str = "AREA"
    density_normalization: float = 70.0
    blend: ColorBlend = GREEN_YELLOW_RED
    no_data_color: RGB = NO_DATA_COLOR
    fill_alpha: int = FILL_ALPHA
    outline_ground_width: float = OUTLINE_GROUND_WIDTH

    def fill_color(self, population: float, area: float) -> RGB:
        if area <= 0:
            return self.no_data_color
        if population < 0:
            raise FeatureDataError(
                f"attribute {self.population_field!r} is negative: "
                f"{population!r}"
            )
        density = math.sqrt(population / area)
        return self.blend.get_color(
            min(1.0, density / self.density_normalization)
        )

    def __call__(
        self, attributes: Mapping[str, Any], map_scale: float
    ) -> VectorStyle:
        population = coerce_number(attributes, self.population_field)
        area = coerce_number(attributes, self.area_field)
        return VectorStyle(
            fill=(*self.fill_color(population, area), self.fill_alpha),
            outline=BLACK,
            outline_width=outline_width(map_scale, self.outline_ground_width),
        )


@dataclasses.dataclass(frozen=True)
class UniformStyle:
    """Fills every feature with the same color."""

    name: str = "uniform"
    color: RGB = NO_DATA_COLOR
    fill_alpha: int = FILL_ALPHA
    outline_ground_width: float = OUTLINE_GROUND_WIDTH

    def __call__(
        self, attributes: Mapping[str, Any], map_scale: float
    ) -> VectorStyle:
        return VectorStyle(
            fill=(*self.color, self.fill_alpha),
            outline=BLACK,
            outline_width=outline_width(map_scale, self.outline_ground_width),
        )


def build_style_registry(
    settings: config.Settings,
) -> dict[str, FeatureStyle]:
    """Create the registered styles configured from settings."""
    styles: list[FeatureStyle] = [
        PopulationDensityStyle(
            population_field=settings.population_field,
            area_field=settings.area_field,
            density_normalization=settings.density_normalization,
        ),
        UniformStyle(),
    ]
    return {style.name: style for style in styles}


def resolve_style(
    registry: Mapping[str, FeatureStyle],
    name: str | None,
    default: str,
) -> FeatureStyle:
    """Look up a style by name, using ``default`` when ``name`` is empty.

    Raises:
        StyleNotFoundError: If no style is registered under the name.
    """
    key = name or default
    try:
        return registry[key]
    except KeyError as exc:
        raise StyleNotFoundError(f"Style not found: {key}") from exc
