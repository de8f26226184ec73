"""
Custom exception hierarchy for depbump.

This module defines structured exception types used across depbump.
All exceptions inherit from :class:`DepBumpError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional


class DepBumpError(Exception):
    """Base exception for all depbump errors.

    All depbump-specific exceptions should inherit from this class.
    It supports structured metadata via ``details`` for richer error
    reporting and debugging.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        # Internally normalize to a mutable dict
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


class ParseError(DepBumpError):
    """Raised when a manifest or lock file cannot be parsed.

    Args:
        message: Error description.
        line_number: Line number where parsing failed.
        line_content: Raw content of the problematic line.
        file_path: Path to the file being parsed.
    """

    __slots__ = ("line_number", "line_content", "file_path")

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        line_content: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "line", line_number)
        _add_if(details, "content", line_content)
        _add_if(details, "file", file_path)

        super().__init__(message, details)

        self.line_number = line_number
        self.line_content = line_content
        self.file_path = file_path


class ConfigError(DepBumpError):
    """Raised when the depbump configuration is missing or invalid.

    Args:
        message: Error description.
        config_path: Path of the configuration file involved.
        option: Name of the offending option, if any.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option


class InvalidConstraintError(DepBumpError):
    """Raised when a version constraint cannot be parsed or has no base version.

    Args:
        message: Error description.
        constraint: The offending constraint text.
        package_name: Package the constraint belongs to, if known.
    """

    __slots__ = ("constraint", "package_name")

    def __init__(
        self,
        message: str,
        *,
        constraint: Optional[str] = None,
        package_name: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "constraint", constraint)
        _add_if(details, "package", package_name)

        super().__init__(message, details)

        self.constraint = constraint
        self.package_name = package_name


class VersionLookupError(DepBumpError):
    """Raised when a version oracle cannot answer for a package.

    Args:
        message: Error description.
        package_name: Name of the package involved.
        source: Oracle or tool that failed.
    """

    __slots__ = ("package_name", "source")

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "package", package_name)
        _add_if(details, "source", source)

        super().__init__(message, details)

        self.package_name = package_name
        self.source = source


class ResolverError(DepBumpError):
    """Raised when a dry-run resolution fails.

    The message carries the resolver's raw diagnostic output; its format is
    owned by the resolver and is not parsed beyond substring matching.

    Args:
        message: Diagnostic text produced by the resolver.
        status_code: Exit status of the resolver, if available.
        command: Command line that was executed.
    """

    __slots__ = ("status_code", "command")

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        command: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "status_code", status_code)
        _add_if(details, "command", command)

        super().__init__(message, details)

        self.status_code = status_code
        self.command = command

    def __str__(self) -> str:
        # The diagnostic is shown verbatim to the user
        return self.message


class FileOperationError(DepBumpError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/write/backup).
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error
