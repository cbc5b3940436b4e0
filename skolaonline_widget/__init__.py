#!/usr/bin/env python3
# Package initialization
"""
Škola OnLine Widget - keeps a cached, day-indexed view of a student's weekly
timetable in sync with the Škola OnLine API.

The package exposes the synchronization core (token exchange, remote fetch,
normalization and the navigation/refresh state machine). Rendering is left to
whatever presentation layer reads the persisted state.
"""

__all__ = [
    "logger",
    "setup_logging",
    "add_error",
    "get_error_summary",
    "clear_errors",
    "configure_request_retries",
]

__version__ = "1.0.0"

import logging

# Global error collection with configurable verbosity
error_collection = {
    "auth_errors": [],
    "fetch_errors": [],
    "connectivity_errors": [],
    "general_errors": [],
}

# Global configuration for error handling
error_config = {
    "collect_details": False,  # Whether to collect detailed error information
    "collect_tracebacks": False,  # Whether to collect tracebacks
    "error_limit": 100  # Maximum number of errors to store per category
}

# Global configuration for HTTP request retries (transport errors only)
request_retry_config = {
    "max_tries": 2,
    "max_time": 30.0,
}

# Configure logging
def setup_logging(level=logging.INFO):
    """Configure logging for the application"""
    logger = logging.getLogger("skolaonline_widget")
    logger.setLevel(level)

    # Only add handler if none exist to avoid duplicate logs
    if not logger.handlers:
        # Create a custom handler that uses tqdm.write for output
        class TqdmLoggingHandler(logging.Handler):
            def emit(self, record):
                try:
                    msg = self.format(record)
                    from tqdm import tqdm
                    tqdm.write(msg)
                except Exception:
                    self.handleError(record)

        console_handler = TqdmLoggingHandler()
        console_handler.setLevel(level)

        formatter = logging.Formatter('[%(asctime)s] %(levelname)s - %(message)s',
                                      datefmt='%Y-%m-%d %H:%M:%S')
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    return logger

# Set up the logger when the module is imported
logger = setup_logging()

def add_error(error_type, message, details=None):
    """Add an error to the error collection with respect to configuration"""
    # Ensure the error type exists in the collection
    if error_type not in error_collection:
        error_collection[error_type] = []

    # Check if we've reached the error limit for this category
    if len(error_collection[error_type]) >= error_config["error_limit"]:
        return

    error_data = {"message": message}

    # Only include details if configured to do so
    if error_config["collect_details"] and details:
        # Filter out tracebacks if not configured to collect them
        if not error_config["collect_tracebacks"] and details.get("traceback"):
            details = {k: v for k, v in details.items() if k != "traceback"}
        error_data["details"] = details

    error_collection[error_type].append(error_data)

def get_error_summary():
    """Get a summary of all errors"""
    total_errors = sum(len(errors) for errors in error_collection.values())
    return {
        "total": total_errors,
        "by_type": {k: len(v) for k, v in error_collection.items() if len(v) > 0}
    }

def clear_errors():
    """Clear all errors"""
    for key in error_collection:
        error_collection[key] = []

def configure_request_retries(max_tries: int = None, max_time: float = None):
    """Configure retrying of HTTP requests that fail at the transport level.

    Args:
        max_tries: Total number of attempts per request (1 disables retrying)
        max_time: Upper bound in seconds spent retrying a single request
    """
    if max_tries is not None:
        if max_tries < 1:
            raise ValueError("max_tries must be at least 1")
        request_retry_config["max_tries"] = max_tries
    if max_time is not None:
        request_retry_config["max_time"] = max_time
    logger.debug(f"Request retries configured: {request_retry_config}")
