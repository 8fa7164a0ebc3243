"""Population density map tile service.

This package renders 256x256 PNG map tiles in the Google/Bing XYZ scheme
showing world countries colored by population density. Polygon layers are
read from shapefiles in WGS84 longitude/latitude, reprojected once to a
spherical Mercator plane, and drawn per tile with a data-driven fill color
and a scale-aware outline.

- Tile extents are computed in closed form from the tile index
- Feature styles are plain callables receiving the map scale explicitly
- Rendered tiles are kept in a bounded least-recently-used cache
- Layers and styles are selected by name, with configurable defaults

See module docstrings for details on each component.
"""
