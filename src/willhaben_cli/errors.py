"""
willhaben-cli — Error taxonomy

MissingDataError   required container absent from a parsed document
NetworkError       transport failure or non-2xx response (alias FetchError)
ParseError         page could not be turned into a JSON document
RenderError        image could not be converted to ASCII

Parser and renderer never let these escape into the UI loop; the session
turns them into inline messages.
"""


class WillhabenError(Exception):
    """Base class for all willhaben-cli errors."""


class MissingDataError(WillhabenError):
    """A required container is missing from a payload."""

    def __init__(self, container: str):
        self.container = container
        super().__init__(f"Missing data: {container}")


class NetworkError(WillhabenError):
    """Request failed before a usable response arrived."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


FetchError = NetworkError


class ParseError(WillhabenError):
    """Response body is not the document we expected."""


class RenderError(WillhabenError):
    """Image bytes could not be decoded or rendered."""
