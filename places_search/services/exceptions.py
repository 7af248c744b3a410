"""Errors raised while talking to the Places web API."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    API_STATUS = "api_status"
    PARSE = "parse"
    INVALID_DETAILS = "invalid_details"


class PlacesError(Exception):
    """Base error for Places request failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT


class TransportError(PlacesError):
    """Raised when the request never produced a response."""

    kind = ErrorKind.TRANSPORT


class HttpStatusError(PlacesError):
    kind = ErrorKind.HTTP_STATUS

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Invalid status code {status_code} from API")
        self.status_code = status_code


class ApiStatusError(PlacesError):
    """Raised when the body ``status`` is not one of the success values."""

    kind = ErrorKind.API_STATUS

    def __init__(self, status: str, error_message: Optional[str] = None) -> None:
        message = f"Places API status {status}"
        if error_message:
            message = f"{message}: {error_message}"
        super().__init__(message)
        self.status = status
        self.error_message = error_message


class ParseError(PlacesError):
    kind = ErrorKind.PARSE


class InvalidDetailsError(PlacesError):
    """Raised when a details body has no ``result`` or no ``formatted_address``."""

    kind = ErrorKind.INVALID_DETAILS
