class WhiteboardError(Exception):
    """Base class for errors that abort a generation."""

    status = 500

    def __init__(self, message, details="", status=None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status is not None:
            self.status = status

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message

    def to_dict(self):
        return {"error": self.message, "details": self.details}


class UpstreamError(WhiteboardError):
    """The model provider answered with an error status."""

    status = 502


class TransportError(WhiteboardError):
    """The command stream broke off while it was being read."""
