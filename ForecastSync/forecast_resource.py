"""Synchronization state published to observers: Loading, Success or Error plus best-known data."""
from dataclasses import dataclass, field
from typing import List, Optional

from forecast_record import ForecastRecord

TRANSPORT = "transport"
REMOTE_API = "remote_api"
STORE = "store"


@dataclass(frozen=True)
class FailureDetail:
    """Why a refresh failed."""
    kind: str  # TRANSPORT, REMOTE_API or STORE
    message: str
    code: Optional[str] = None  # "cod" from the API error body
    http_status: Optional[int] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Resource:
    """Base for every state. ``data`` is never None; empty means nothing cached yet."""
    data: List[ForecastRecord] = field(default_factory=list)

    @property
    def status(self) -> str:
        return type(self).__name__.lower()


@dataclass(frozen=True)
class Loading(Resource):
    """Refresh in progress, data is the last known (possibly stale) snapshot."""


@dataclass(frozen=True)
class Success(Resource):
    """Data is fresh."""


@dataclass(frozen=True)
class Error(Resource):
    """Refresh failed, data is the last known snapshot."""
    detail: Optional[FailureDetail] = None
