from estimator.client.analysis import AnalysisClient, build_request
from estimator.client.errors import (
    AnalysisError,
    EmptyInputError,
    InvalidResponseError,
    NetworkError,
    RemoteError,
    StreamInterruptedError,
    UnauthorizedError,
)
from estimator.client.session import AnalysisSession

__all__ = [
    "AnalysisClient",
    "AnalysisError",
    "AnalysisSession",
    "EmptyInputError",
    "InvalidResponseError",
    "NetworkError",
    "RemoteError",
    "StreamInterruptedError",
    "UnauthorizedError",
    "build_request",
]
