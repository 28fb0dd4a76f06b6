"""Feature info for clicked map coordinates.

This package answers "what is here?" for a click on a web map: it finds the
WMS layers under the clicked pixel, sends them GetFeatureInfo requests
(merging layers that share an endpoint into one request), parses the GeoJSON
answers and groups the features by feature type.

- ``coordinate_info``: the long-lived aggregator fed by map clicks
- ``services``: eligibility, request batching, execution and aggregation
- ``sources`` and ``engine``: WMS sources, layers and the map interfaces
- ``main`` and ``api``: a FastAPI service answering clicks over HTTP

See module docstrings for details on usage.
"""
