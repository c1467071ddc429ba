"""
Exception taxonomy for the ingestion pipeline.

FatalSetupError aborts the whole batch. PerTargetError is caught at the
unit-of-work boundary and reported as "<station> : <message>".
"""

import enum
from typing import Mapping, Optional


class IngestionError(Exception):
    """Base class for every error raised by the pipeline."""


class FatalSetupError(IngestionError):
    """Nothing can be ingested: configuration or worklist unavailable."""


class ConfigurationError(FatalSetupError):
    pass


class WorklistUnavailableError(FatalSetupError):
    pass


class PerTargetError(IngestionError):
    """Failure isolated to a single target."""


class FetchErrorKind(str, enum.Enum):
    TRANSPORT = "TransportError"
    NON_SUCCESS_STATUS = "NonSuccessStatus"
    BODY_READ = "BodyReadError"
    MALFORMED_JSON = "MalformedJson"
    UPSTREAM_REPORTED = "UpstreamReportedError"


class FetchError(PerTargetError):
    """The upstream call for one station failed."""

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        status_code: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.headers = dict(headers) if headers is not None else None
        self.body = body


class NoDataError(PerTargetError):
    pass


class InvalidTimestampError(PerTargetError):
    pass


class StorageError(PerTargetError):
    """A database read or write failed."""
