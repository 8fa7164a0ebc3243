"""API router subpackage for the tile service.

Submodules:
    - tiles: Endpoints serving PNG tiles by query parameters or XYZ path,
      and the tile cache statistics.
    - layers: Endpoints listing layers and styles and describing a layer's
      extent.

Each module exposes its own APIRouter for composition in the application's
main FastAPI instance.
"""
