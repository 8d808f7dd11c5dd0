# airdl/core/errors.py
"""
Error taxonomy for the downloader.

Every failure the core can report derives from AirError and carries the
process exit code the CLI should use for it.
"""
from __future__ import annotations
from pathlib import Path
from typing import Optional


class AirError(Exception):
    exit_code = 1


# ---- URN parsing -------------------------------------------------------------
class ParseError(AirError, ValueError):
    exit_code = 3


class InvalidPrefix(ParseError):
    def __init__(self, raw: str):
        super().__init__(f"URN must start with 'urn:air:' (got {raw!r})")
        self.raw = raw


class MissingField(ParseError):
    def __init__(self, field: str):
        super().__init__(f"URN is missing the '{field}' segment")
        self.field = field


class InvalidSegment(ParseError):
    def __init__(self, field: str, value: str):
        super().__init__(f"URN segment '{field}' cannot be {value!r}")
        self.field = field
        self.value = value


class InvalidId(ParseError):
    def __init__(self, value: str):
        super().__init__(f"Model id must be a positive integer (got {value!r})")
        self.value = value


class InvalidVersion(ParseError):
    def __init__(self, value: str):
        super().__init__(f"Version must be a positive integer (got {value!r})")
        self.value = value


# ---- remote ------------------------------------------------------------------
class AuthError(AirError):
    exit_code = 4


class ModelNotFound(AirError):
    exit_code = 5


class NetworkError(AirError):
    exit_code = 6


class IncompleteTransfer(NetworkError):
    def __init__(self, expected: int, received: int):
        super().__init__(f"Transfer incomplete: received {received} of {expected} bytes")
        self.expected = expected
        self.received = received


class HashMismatch(NetworkError):
    def __init__(self, expected: str, actual: str):
        super().__init__(f"Checksum mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


# ---- local storage -----------------------------------------------------------
class StorageError(AirError):
    exit_code = 7

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(f"{message}: {path}" if path is not None else message)
        self.path = path


class MetadataError(AirError):
    exit_code = 8

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(f"{message}: {path}" if path is not None else message)
        self.path = path


class MetadataNotFound(MetadataError):
    pass


class CorruptMetadata(MetadataError):
    pass
