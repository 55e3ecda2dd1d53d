"""RFC 9457 Problem Details exception hierarchy.

All API errors extend ProblemDetailError and are converted to
application/problem+json responses by the exception handler middleware.
"""


class ProblemDetailError(Exception):
    def __init__(self, type_uri: str, title: str, status: int, detail: str):
        self.type_uri = type_uri
        self.title = title
        self.status = status
        self.detail = detail
        super().__init__(detail)


class SnapshotQueryError(ProblemDetailError):
    """A genuine provider failure aborted the snapshot (all-or-nothing)."""

    def __init__(self, metric: str, reason: str):
        super().__init__(
            type_uri="https://api.qi.health/problems/snapshot-query-failed",
            title="Snapshot Query Failed",
            status=502,
            detail=f"Query for '{metric}' failed: {reason}",
        )


class AuthorizationRequestError(ProblemDetailError):
    def __init__(self, reason: str):
        super().__init__(
            type_uri="https://api.qi.health/problems/authorization-failed",
            title="Authorization Request Failed",
            status=502,
            detail=f"Health data authorization request failed: {reason}",
        )
