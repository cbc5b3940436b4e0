#!/usr/bin/env python3
"""
Error handling utilities for the Škola OnLine widget.
This module provides the exception taxonomy used by the sync pipeline and a
decorator for consistent logging and conversion of errors at API boundaries.
"""
import functools
import inspect
import traceback
from typing import Any, Callable, Optional, Type, TypeVar, cast

from skolaonline_widget import logger, add_error, error_config
from skolaonline_widget.constants import (
    MSG_AUTH_FAILED,
    MSG_IDENTITY_FAILED,
    MSG_INCOMPLETE_PROFILE,
    MSG_NO_CONNECTIVITY,
    MSG_NOT_AUTHENTICATED,
    MSG_TIMETABLE_FAILED,
)

# Type definitions for better type hinting
T = TypeVar('T')
F = TypeVar('F', bound=Callable[..., Any])

class ScheduleSyncError(Exception):
    """Base exception class for all sync pipeline errors.

    ``user_message`` is the short localized text shown by the widget.
    ``recorded`` is set once the error is in the package error collection.
    """
    default_message = "Chyba"
    error_category = "general_errors"
    recorded = False

    def __init__(self, detail: Optional[str] = None, user_message: Optional[str] = None):
        self.detail = detail
        self.user_message = user_message or self.default_message
        super().__init__(detail or self.user_message)

class NotAuthenticated(ScheduleSyncError):
    """Raised when no refresh token is stored."""
    default_message = MSG_NOT_AUTHENTICATED
    error_category = "auth_errors"

class AuthError(ScheduleSyncError):
    """Raised when the token exchange is rejected, fails or times out."""
    default_message = MSG_AUTH_FAILED
    error_category = "auth_errors"

class FetchError(ScheduleSyncError):
    """Raised when an identity or timetable request fails or times out."""
    default_message = MSG_TIMETABLE_FAILED
    error_category = "fetch_errors"

class IdentityFetchError(FetchError):
    """Raised when the identity request fails."""
    default_message = MSG_IDENTITY_FAILED

class IncompleteProfile(IdentityFetchError):
    """Raised when the identity response lacks the person or school year id."""
    default_message = MSG_INCOMPLETE_PROFILE
    error_category = "fetch_errors"

class NoConnectivity(ScheduleSyncError):
    """Raised when no network is available at refresh time.

    Not terminal by itself: the orchestrator retries and only surfaces it once
    the configured retry cap is exceeded.
    """
    default_message = MSG_NO_CONNECTIVITY
    error_category = "connectivity_errors"

def configure_error_handling(collect_details=False, collect_tracebacks=False, error_limit=100):
    """Configure error handling behavior"""
    error_config["collect_details"] = collect_details
    error_config["collect_tracebacks"] = collect_tracebacks
    error_config["error_limit"] = error_limit

def record_error(error: Exception, error_category: Optional[str] = None) -> None:
    """Add an exception to the package error collection, at most once per exception."""
    if getattr(error, "recorded", False):
        return
    category = error_category or getattr(error, "error_category", "general_errors")
    add_error(category, str(error), {
        "type": type(error).__name__,
        "traceback": traceback.format_exc(),
    })
    error.recorded = True

def handle_errors(
    error_category: str = "general_errors",
    error_class: Type[Exception] = Exception,
    reraise: bool = True,
    default_return: Any = None,
    error_message: Optional[str] = None
) -> Callable[[F], F]:
    """
    Decorator for handling errors in a consistent way.

    Works for both plain and ``async`` functions. Exceptions that already are
    instances of ``error_class`` are re-raised untouched; anything else is
    wrapped in ``error_class`` with a formatted message.

    Args:
        error_category: The category of the error for reporting purposes.
        error_class: The exception class to catch and convert.
        reraise: Whether to reraise the exception after handling.
        default_return: The value to return if an exception occurs and reraise is False.
        error_message: A message template that will be formatted with the exception.

    Returns:
        The decorated function.
    """
    def decorator(func: F) -> F:
        def _handle(e: Exception) -> Any:
            # Get function information for better error messages
            module = inspect.getmodule(func)
            function_name = f"{module.__name__ if module else 'unknown'}.{func.__name__}"

            # Format error message
            msg = error_message or "Error in {function}: {error}"
            formatted_msg = msg.format(error=str(e), function=function_name)

            logger.error(formatted_msg)

            add_error(error_category, formatted_msg, {
                "traceback": traceback.format_exc(),
                "function": function_name,
            })

            # Reraise the error if requested, marked as already collected
            if reraise:
                if isinstance(e, error_class):
                    e.recorded = True
                    raise e
                wrapped = error_class(formatted_msg)
                wrapped.recorded = True
                raise wrapped from e

            return default_return

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    return _handle(e)
            return cast(F, async_wrapper)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                return _handle(e)
        return cast(F, wrapper)
    return decorator
