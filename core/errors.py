from typing import Optional


class GatewayError(Exception):
    """
    A remote fetch failed.

    Covers transport failures, malformed responses and timeouts alike; callers
    only learn that the fetch failed plus a human-readable message.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        self.message = message
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message
