class AiriMarketError(Exception):
    """Base class for marketplace errors."""


class UploadError(AiriMarketError):
    """Rejected image upload; the message is safe to show to the client."""


class InvalidTokenError(AiriMarketError):
    """Access token is malformed, expired or has no subject."""
