class TransientUpstreamError(Exception):
    """Raised on network errors, timeouts, 5xx and 429 responses."""

    pass


class TranscriptProviderUnavailable(Exception):
    """Raised when a provider cannot reach or parse the caption listing."""

    pass


class NoTranscriptAvailable(Exception):
    """Raised when a video has no usable captions. Never retried."""

    pass


class MetadataAuthError(Exception):
    """Raised when the metadata API rejects our credentials or quota."""

    pass


class VideoNotFound(Exception):
    """Raised when the metadata API does not know the video."""

    pass
