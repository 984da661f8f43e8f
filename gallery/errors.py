"""Exception types shared across the gallery backend.

Routes translate these into flat ``{"error": ...}`` JSON responses.
"""


class GalleryError(Exception):
    """Base class for errors raised by the gallery core."""

    status_code: int = 500


class InvalidInputError(GalleryError):
    """A request parameter is missing or cannot be coerced."""

    status_code = 400


class AuthenticationError(GalleryError):
    """A bearer credential is missing, malformed, expired or rejected."""

    status_code = 401
