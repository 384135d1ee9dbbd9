"""Error taxonomy for the embed proxy and its collaborators."""


class EmbedShieldError(Exception):
    """Base exception for all handled failures."""
    pass


class InvalidURL(EmbedShieldError):
    """Raised when the target URL is missing or not an absolute URL."""

    def __init__(self, url):
        self.url = url
        super().__init__(f"Invalid URL: {url!r}")


class UpstreamUnavailable(EmbedShieldError):
    """Raised when the upstream fetch fails, times out or returns nothing."""

    def __init__(self, url, reason):
        self.url = url
        self.reason = reason
        super().__init__(f"Upstream {url} unavailable: {reason}")


class MetadataUnavailable(EmbedShieldError):
    """Raised when the metadata API cannot answer a request."""

    def __init__(self, endpoint, reason):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Metadata request {endpoint} failed: {reason}")
