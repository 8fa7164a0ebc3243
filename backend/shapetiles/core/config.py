"""Application settings and configuration management.

This module provides Pydantic-based settings management that loads
configuration from environment variables or a .env file. Settings include
the shapefile datasets served as tile layers, the earth radius shared by
the tile grid and the Mercator reprojection, styling tunables, the tile
cache capacity, CORS origins and the log level.

Example:
    Settings can be accessed via the cached get_settings() function:
        >>> from shapetiles.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.countries_shapefile)

    Environment variables can override defaults:
        >>> COUNTRIES_SHAPEFILE=/data/world_countries.shp
        >>> CACHE_MAX_ENTRIES=4096
        >>> DENSITY_NORMALIZATION=90
"""

import functools
import pathlib

import pydantic
import pydantic_settings

DEFAULT_COUNTRIES_SHAPEFILE = pathlib.Path(
    "App_Data/world_countries_boundary_file_world_2002.shp"
)


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    All settings can be overridden via environment variables or .env file.

    Attributes:
        countries_shapefile: Shapefile backing the ``countries`` layer.
        extra_layers: Additional layer name to shapefile path mappings.
        default_layer: Layer rendered when a request names none.
        default_style: Style applied when a request names none.
        earth_radius: Sphere radius in metres for the tile grid and the
            Mercator projection. Both must agree.
        tile_size: Edge length of rendered tiles in pixels.
        max_zoom: Highest zoom level accepted by the tile endpoints.
        density_normalization: Square-rooted density mapped to full red.
        population_field: Feature attribute holding the population count.
        area_field: Feature attribute holding the feature area.
        cache_max_entries: Capacity of the in-memory tile cache.
        allow_origins: List of allowed CORS origins (["*"] allows all).
        log_level: Root log level name.

    Example:
        Create settings with custom values:
            >>> settings = Settings(
            ...     countries_shapefile=Path("/data/countries.shp"),
            ...     extra_layers={"regions": Path("/data/regions.shp")},
            ...     cache_max_entries=64,
            ... )
    """

    countries_shapefile: pathlib.Path = DEFAULT_COUNTRIES_SHAPEFILE
    extra_layers: dict[str, pathlib.Path] = {}
    default_layer: str = "countries"
    default_style: str = "popdens"
    earth_radius: float = pydantic.Field(default=6371000.0, gt=0)
    tile_size: int = pydantic.Field(default=256, gt=0)
    max_zoom: int = pydantic.Field(default=30, ge=0)
    density_normalization: float = pydantic.Field(default=70.0, gt=0)
    population_field: str = "POP2005"
    area_field: str = "AREA"
    cache_max_entries: int = pydantic.Field(default=1024, gt=0)
    allow_origins: list[str] = ["*"]
    log_level: str = "INFO"

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def layer_sources(self) -> dict[str, pathlib.Path]:
        """Return every configured layer name with its shapefile path.

        The ``countries`` layer always comes first; ``extra_layers`` may add
        more layers but cannot replace it.
        """
        sources = {"countries": self.countries_shapefile}
        for name, path in self.extra_layers.items():
            sources.setdefault(name, path)
        return sources


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded from environment variables or .env file and cached
    for the lifetime of the application. Subsequent calls return the same
    cached instance.

    Returns:
        Settings instance with all configuration values populated.

    Example:
        The settings are cached, so multiple calls return the same instance:
            >>> settings1 = get_settings()
            >>> settings2 = get_settings()
            >>> assert settings1 is settings2  # Same instance
    """
    return Settings()
