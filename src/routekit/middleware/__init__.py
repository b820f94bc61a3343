"""Middleware that wraps the dispatcher."""

from .base import FunctionMiddleware, Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
