"""
Application errors and their HTTP mapping.

Every failure a client can see is a TravelBlogError carrying a human readable
message and a status code. The handlers registered in main.py turn them into
``{"message": ...}`` JSON bodies.

    TravelBlogError
    ├── ValidationError  400
    ├── AuthError        401 / 403
    ├── NotFoundError    404
    └── StoreError       500 (message fixed per handler, cause logged)
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class TravelBlogError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(TravelBlogError):
    """Client input is missing or unusable."""

    status_code = 400


class AuthError(TravelBlogError):
    """Missing credential (401) or credential/role that does not grant access (403)."""

    status_code = 403


class NotFoundError(TravelBlogError):
    status_code = 404


class StoreError(TravelBlogError):
    """The document store failed. The message is safe to show; the cause is not."""

    status_code = 500


@contextmanager
def store_errors(message: str) -> Iterator[None]:
    """Turn driver failures inside the block into StoreError(message)."""
    try:
        yield
    except PyMongoError as exc:
        logger.error("%s: %s", message, exc, exc_info=True)
        raise StoreError(message) from exc
