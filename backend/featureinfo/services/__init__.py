"""Feature-info pipeline steps.

Submodules:
    - eligibility: Which hit layers may be queried.
    - batching: Per-layer GetFeatureInfo URLs and their merged requests.
    - executor: Concurrent, fail-fast execution of merged requests.
    - aggregate: GeoJSON parsing and grouping by feature type.
"""
