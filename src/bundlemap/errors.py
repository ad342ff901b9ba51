from __future__ import annotations


class BundleMapError(Exception):
    """Base exception for bundlemap."""


class ResourceUnavailableError(BundleMapError):
    """Raised when a named input resource is missing or unreadable."""


class UnsupportedResourceError(BundleMapError):
    """Raised when a dynamic resource is supplied to a mapped build."""


class MissingConfigurationError(BundleMapError):
    """Raised when a required output location is not configured."""


class InvalidOptionError(BundleMapError):
    """Raised by strict option parsing for unknown keys or values."""


class ConfigFileError(BundleMapError):
    """Raised when a bundle configuration file is malformed."""


class UnsafePathError(BundleMapError):
    """Raised when a bundle name or path would escape its output directory."""


class OutOfRangeError(BundleMapError):
    """Raised when an offset lies outside the indexed text."""


class InvalidPositionError(BundleMapError):
    """Raised when a (line, column) pair does not exist in the indexed text."""


class UnorderedMappingError(BundleMapError):
    """Raised when mappings are not in line-major, column-ascending order."""


class SourceMapFormatError(BundleMapError):
    """Raised when an encoded mappings string or map document is malformed."""


class JavaScriptSyntaxError(BundleMapError):
    """Raised when the tokenizer hits an unterminated literal or comment."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} at offset {offset}")
        self.offset = offset
