# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Logging interface for MAVT.

This module provides a configurable logging interface that library modules
can use for output without depending on the CLI. The logger can be configured
globally or passed as a parameter for better isolation.

The logger supports four output levels:
- Info: Printed unless the logger is quiet (tracking and update events)
- Warning: Always printed, to stderr (skipped apps, failed notifications)
- Verbose: Only printed when verbose mode is enabled
- Debug: Only printed when debug mode is enabled (implies verbose)

Example:
    Configure global logger:
        ```python
        from mavt.logging import get_logger, set_global_logger

        logger = get_logger(verbose=True, debug=False)
        set_global_logger(logger)
        ```

    Use in library code:
        ```python
        from mavt.logging import get_global_logger

        logger = get_global_logger()
        logger.info("TRACKER", "Now tracking Example (com.example.app)")
        logger.verbose("STORE", "Saved apps/com.example.app.json")
        logger.warning("TRACKER", "Error checking com.example.app: timeout")
        ```

Note:
    The default logger is silent, so library functions won't print
    anything unless explicitly configured. The CLI configures the global
    logger when commands are executed. The daemon writes from several
    threads, so DefaultLogger serializes writes with a lock.
"""

from __future__ import annotations

from datetime import datetime
import sys
import threading
from typing import Protocol


def sanitize_for_log(text: str) -> str:
    """Strip newlines and control characters from text bound for a log line.

    Catalog data (app names, versions, release notes) is remote input and
    must not be able to forge extra log lines.

    Args:
        text: Untrusted text.

    Returns:
        Text with CR/LF replaced by spaces and other control characters
            (except tab) removed.

    Example:
        ```python
        sanitize_for_log("Evil\\nFAKE LINE")  # 'Evil FAKE LINE'
        ```

    """
    text = text.replace("\n", " ").replace("\r", " ")
    return "".join(ch for ch in text if ch >= " " or ch == "\t")


class Logger(Protocol):
    """Protocol for logger implementations."""

    def info(self, prefix: str, message: str) -> None:
        """Print an informational message.

        Args:
            prefix: Message prefix (e.g., "TRACKER", "DAEMON").
            message: Log message.
        """
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Print a warning message.

        Args:
            prefix: Message prefix.
            message: Log message.
        """
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message.

        Args:
            prefix: Message prefix (e.g., "STORE", "CATALOG").
            message: Log message.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message.

        Args:
            prefix: Message prefix (e.g., "HTTP").
            message: Log message.
        """
        ...


class DefaultLogger:
    """Default logger implementation that prints timestamped lines.

    This logger respects verbose, debug and quiet flags. Info, verbose and
    debug lines go to stdout; warnings go to stderr.
    """

    _write_lock = threading.Lock()

    def __init__(
        self, verbose: bool = False, debug: bool = False, quiet: bool = False
    ) -> None:
        """Initialize logger with verbosity settings.

        Args:
            verbose: If True, print verbose messages.
            debug: If True, print debug messages (implies verbose).
            quiet: If True, suppress info messages. Warnings still print.
        """
        self._verbose = verbose or debug
        self._debug = debug
        self._quiet = quiet and not self._verbose

    def _emit(self, prefix: str, message: str, stream=None) -> None:
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with self._write_lock:
            print(f"{stamp} [{prefix}] {message}", file=stream or sys.stdout)

    def info(self, prefix: str, message: str) -> None:
        """Print an informational message (unless quiet)."""
        if not self._quiet:
            self._emit(prefix, message)

    def warning(self, prefix: str, message: str) -> None:
        """Print a warning message to stderr."""
        self._emit(prefix, message, stream=sys.stderr)

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message (only when verbose mode is active)."""
        if self._verbose:
            self._emit(prefix, message)

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message (only when debug mode is active)."""
        if self._debug:
            self._emit(prefix, message)


class SilentLogger:
    """Logger that suppresses all output.

    Useful for programmatic usage when output is not desired.
    """

    def info(self, prefix: str, message: str) -> None:
        """Suppress info output."""
        pass

    def warning(self, prefix: str, message: str) -> None:
        """Suppress warning output."""
        pass

    def verbose(self, prefix: str, message: str) -> None:
        """Suppress verbose output."""
        pass

    def debug(self, prefix: str, message: str) -> None:
        """Suppress debug output."""
        pass


# Global logger instance (defaults to silent)
_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Get a logger instance with specified verbosity.

    Args:
        verbose: If True, logger will print verbose messages.
        debug: If True, logger will print debug messages (implies verbose).

    Returns:
        A logger instance configured with the specified verbosity.

    Example:
        Get a verbose logger:
            ```python
            logger = get_logger(verbose=True)
            logger.verbose("MODULE", "Processing...")
            ```
    """
    return DefaultLogger(verbose=verbose, debug=debug)


def logger_for_level(
    level: str, verbose: bool = False, debug: bool = False
) -> Logger:
    """Build a logger from a configured log level.

    Command-line flags win over the configured level: -v/-d always raise
    verbosity regardless of MAVT_LOG_LEVEL.

    Args:
        level: One of "debug", "info", "warn", "error" (case-insensitive).
        verbose: Verbose flag from the command line.
        debug: Debug flag from the command line.

    Returns:
        A DefaultLogger configured for the level.

    """
    level = level.lower()
    return DefaultLogger(
        verbose=verbose,
        debug=debug or level == "debug",
        quiet=level in ("warn", "error"),
    )


def get_global_logger() -> Logger:
    """Get the global logger instance.

    Returns:
        The current global logger instance.

    Note:
        The default global logger is silent. Use set_global_logger() to
        configure it, or pass a logger instance directly to functions.
    """
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Set the global logger instance.

    Args:
        logger: Logger instance to use as the global logger.

    Note:
        This affects all library functions that use get_global_logger()
        without being handed a logger instance. For better isolation, pass
        logger instances directly (Tracker, Scheduler and ApiServer all
        accept one).
    """
    global _global_logger
    _global_logger = logger
