"""Sample provider error taxonomy.

NoDataError is a benign "no samples match this query" response and is
absorbed by the aggregator. ProviderFailure is a genuine failure and
aborts the snapshot in all-or-nothing mode.
"""


class ProviderError(Exception):
    def __init__(self, metric: str, reason: str):
        self.metric = metric
        self.reason = reason
        super().__init__(f"{metric}: {reason}")


class NoDataError(ProviderError):
    def __init__(self, metric: str):
        super().__init__(metric, "no data available for the specified predicate")


class ProviderFailure(ProviderError):
    """Raised for permission, transport and store failures."""


class ProviderTimeoutError(ProviderFailure):
    def __init__(self, metric: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(metric, f"query timed out after {timeout_seconds:g}s")
