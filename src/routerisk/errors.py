"""Exception types raised by the routing and correlation core."""


class RouteRiskError(Exception):
    """Base class for routerisk errors."""


class LaneNetworkError(RouteRiskError):
    """The sea-lane dataset could not be read or is malformed."""


class RouterError(RouteRiskError):
    """An external road/rail router returned no usable route."""


class HazardSourceError(RouteRiskError):
    """A hazard feed returned an unusable response."""
