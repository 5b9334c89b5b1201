class ExternalSourceUnavailable(Exception):
    """One of the remote data sources failed or returned an unexpected payload."""

    def __init__(self, source, reason=None):
        self.source = source
        self.reason = reason
        message = f"External data source unavailable: {source}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
