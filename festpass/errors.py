from __future__ import annotations


class FestpassError(Exception):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ----------------------------
# Rejected before any store call
# ----------------------------
class InvalidRequest(FestpassError):
    kind = "validation"


# ----------------------------
# Server-side setup is incomplete (never the caller's fault)
# ----------------------------
class ConfigurationError(FestpassError):
    kind = "configuration"


class AuthNotConfigured(ConfigurationError):
    pass


class ChatNotConfigured(ConfigurationError):
    pass


# ----------------------------
# Document / blob store
# ----------------------------
class StoreError(FestpassError):
    kind = "store"


class StoreUnavailable(StoreError):
    """The transport to the store could not be reached at all."""
    kind = "connectivity"


class ReceiptAllocationExhausted(FestpassError):
    kind = "contention"


# ----------------------------
# Generative-text backend
# ----------------------------
class UpstreamError(FestpassError):
    kind = "upstream"
