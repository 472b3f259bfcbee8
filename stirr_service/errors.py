"""
Refresh error taxonomy

Every failure that can abort a refresh cycle derives from RefreshError, so
callers that only care whether a refresh succeeded can catch one type.
"""


class RefreshError(Exception):
    """Base class for failures that abort a refresh cycle"""
    pass


class SourceUnavailable(RefreshError):
    """Transport failure, timeout, or non-success response from the provider"""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Source unavailable ({url}): {reason}")


class DecodeFailure(RefreshError):
    """Provider payload could not be decoded into the data model"""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Malformed payload from {url}: {reason}")


class InconsistentLineup(RefreshError):
    """A per-channel fetch failed mid-refresh; the whole lineup is discarded"""

    def __init__(self, channel: str, stage: str, cause: Exception):
        self.channel = channel
        self.stage = stage
        self.cause = cause
        super().__init__(f"Channel '{channel}' {stage} fetch failed: {cause}")


class RefreshTimeout(RefreshError):
    """A refresh cycle exceeded its deadline"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Refresh did not complete within {timeout}s")
