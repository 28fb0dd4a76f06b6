"""API router subpackage for the feature-info service.

Submodules:
    - layers: Listing of the WMS layers clients may query.
    - feature_info: Feature info for a clicked coordinate.

Each module exposes its own APIRouter for composition in the application's
main FastAPI instance.
"""
