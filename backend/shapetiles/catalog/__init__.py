"""Layer catalog: the polygon datasets tiles can be rendered from.

This package holds the layer metadata model and the repositories that
resolve a layer name to its reprojected GeoDataFrame. Shapefile-backed
layers are used in production; the in-memory repository serves tests and
local development.

Example:
    Use in a service or FastAPI dependency:
        >>> from shapetiles.catalog import repository
        >>> repo = repository.get_layer_repository()
        >>> frame = repo.load("countries")
"""
