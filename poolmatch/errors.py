from __future__ import annotations

from enum import Enum
from typing import Optional


class PoolMatchError(Exception):
    pass


class MalformedPolylineError(PoolMatchError, ValueError):
    pass


class EmptyPathError(PoolMatchError, ValueError):
    pass


class DegenerateRouteError(PoolMatchError, ValueError):
    pass


class InvalidTransitionError(PoolMatchError, ValueError):
    pass


class FailureReason(Enum):
    TIMEOUT = "Timeout"
    UNAVAILABLE = "Unavailable"
    NO_ROUTE = "NoRoute"
    INVALID_RESPONSE = "InvalidResponse"


class RoutingProviderError(PoolMatchError):
    """
    Failure of the external routing provider.
    reason: what went wrong (timeout, provider down, no route, bad payload)
    status_code: HTTP status when the provider answered at all
    detail: provider error text, kept for logs
    phase: name of the detour phase that was running, set by the evaluator
    """

    def __init__(self, reason: FailureReason, detail: str = "",
                 status_code: Optional[int] = None, phase: Optional[str] = None):
        self.reason = reason
        self.detail = detail
        self.status_code = status_code
        self.phase = phase
        msg = f"routing provider failed: {reason.value}"
        if status_code is not None:
            msg += f" (HTTP {status_code})"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class GeocodingError(PoolMatchError):
    pass


class RepositoryError(PoolMatchError):
    pass
