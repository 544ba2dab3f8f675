from __future__ import annotations

from typing import Optional


class BikeShareError(RuntimeError):
    """Base class for every failure the bike-share pipeline reports back to the user."""


class InvalidArgument(BikeShareError, ValueError):
    # Also a `ValueError` so generic input validation handlers keep working.
    pass


class AddressNotFound(BikeShareError):
    pass


class NoRouteFound(BikeShareError):
    pass


class NoReachableStations(BikeShareError):
    pass


class RouteUnavailable(BikeShareError):
    pass


class TooManyResults(BikeShareError):
    pass


class ExternalServiceFailure(BikeShareError):
    """
    Raised for network, HTTP status, and payload-shape errors from any external collaborator.

    `status_code` is set when the failure came from an HTTP response.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
