"""Request pipeline, its interceptor stages and the caller-facing client."""

from .auth import AuthInterceptor
from .client import ApiClient, decode_as
from .errors import ErrorInterceptor, extract_error_message
from .http_logging import LoggingInterceptor
from .pipeline import RequestPipeline
from .retry import RetryInterceptor

__all__ = [
    "ApiClient",
    "AuthInterceptor",
    "ErrorInterceptor",
    "LoggingInterceptor",
    "RequestPipeline",
    "RetryInterceptor",
    "decode_as",
    "extract_error_message",
]
