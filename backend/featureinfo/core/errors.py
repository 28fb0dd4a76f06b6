"""Error types raised while answering a map click.

Errors are scoped to the smallest unit they affect. A
:class:`BuildQueryError` concerns a single layer and is absorbed by the
request builder, which skips that layer. :class:`QueryRequestError` and
:class:`PayloadParseError` concern a whole click: they abort the click's
aggregation and leave the previously committed result untouched.

Example:
    Distinguish click-level failures from the base class:
        >>> from featureinfo.core import errors
        >>> try:
        ...     raise errors.QueryRequestError("HTTP 503 from wms")
        ... except errors.FeatureInfoError as exc:
        ...     print(f"click failed: {exc}")
"""


class FeatureInfoError(RuntimeError):
    """Base class for all feature-info failures."""


class BuildQueryError(FeatureInfoError):
    """A single layer could not produce a feature-info URL.

    Raised for layers whose source lacks feature-info support or whose
    source returned no URL for the clicked coordinate. Never fatal to the
    click: the layer is skipped and the remaining layers are still queried.
    """


class QueryRequestError(FeatureInfoError):
    """A batched feature-info request failed on the wire.

    Covers transport errors as well as non-success HTTP statuses. Fails the
    whole click (all-or-nothing commit).
    """


class PayloadParseError(FeatureInfoError):
    """A feature-info response was not a readable GeoJSON document.

    Treated like :class:`QueryRequestError`: the whole click fails.
    """
