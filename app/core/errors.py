"""Typed errors raised by the pricing engine and the distance provider"""
from typing import Any, Optional


class ServiceError(Exception):
    """Error with a machine-readable code and an HTTP-like status."""

    def __init__(self, code: str, status_code: int = 400, details: Optional[Any] = None):
        super().__init__(code)
        self.code = code
        self.status_code = status_code
        self.details = details

    def __repr__(self):
        return f"{type(self).__name__}({self.code!r}, status_code={self.status_code})"


class PricingError(ServiceError):
    pass


class MapsError(ServiceError):
    def __init__(self, code: str, status_code: int = 500, details: Optional[Any] = None):
        super().__init__(code, status_code, details)
