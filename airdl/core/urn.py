from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import InvalidId, InvalidPrefix, InvalidSegment, InvalidVersion, MissingField, ParseError

"""
AIR (AI Resource) URN parsing.

    urn:air:{ecosystem}:{type}:{source}:{id}[@{version}][:{layer}][.{format}]

- parse_urn(raw): validates and normalizes a URN string into a ModelURN.
- ModelURN.canonical(): the normalized string form; parse_urn(u.canonical())
  always yields an equal ModelURN.
"""

PREFIX = "urn:air:"
REQUIRED_FIELDS = ("ecosystem", "type", "source", "id")

_DIGITS = re.compile(r"^[0-9]+$")
_DOTS = re.compile(r"^\.+$")


@dataclass(frozen=True)
class ModelURN:
    ecosystem: str
    model_type: str
    source: str
    id: int
    version: Optional[int] = None
    layer: Optional[str] = None
    format: Optional[str] = None
    # exact input text; not part of identity
    raw: str = field(default="", compare=False, repr=False)

    @property
    def is_pinned(self) -> bool:
        return self.version is not None

    def canonical(self) -> str:
        s = f"{PREFIX}{self.ecosystem}:{self.model_type}:{self.source}:{self.id}"
        if self.version is not None:
            s += f"@{self.version}"
        if self.layer is not None:
            s += f":{self.layer}"
        if self.format is not None:
            s += f".{self.format}"
        return s

    def __str__(self) -> str:
        return self.raw or self.canonical()


def _positive_int(value: str) -> Optional[int]:
    if not _DIGITS.match(value):
        return None
    n = int(value)
    return n if n > 0 else None


def parse_urn(raw: str) -> ModelURN:
    text = (raw or "").strip()
    if text[:len(PREFIX)].lower() != PREFIX:
        raise InvalidPrefix(raw)

    parts: List[str] = text[len(PREFIX):].split(":")
    if len(parts) > 5:
        raise ParseError(f"Unexpected segment after layer: {':'.join(parts[5:])!r}")

    # trailing ".format" lives on whichever segment comes last (id or layer)
    fmt: Optional[str] = None
    if len(parts) >= 4 and "." in parts[-1]:
        parts[-1], fmt = parts[-1].rsplit(".", 1)
        fmt = fmt.strip().lower()
        if not fmt:
            raise MissingField("format")

    for i, name in enumerate(REQUIRED_FIELDS):
        if i >= len(parts) or not parts[i].strip():
            raise MissingField(name)

    ecosystem, model_type, source = (p.strip().lower() for p in parts[:3])
    # segments become path components; "." and ".." would leave the base dir
    for name, value in zip(REQUIRED_FIELDS, (ecosystem, model_type, source)):
        if _DOTS.match(value):
            raise InvalidSegment(name, value)

    id_part, sep, version_part = parts[3].strip().partition("@")
    model_id = _positive_int(id_part)
    if model_id is None:
        raise InvalidId(id_part)
    version: Optional[int] = None
    if sep:
        version = _positive_int(version_part)
        if version is None:
            raise InvalidVersion(version_part)

    layer: Optional[str] = None
    if len(parts) == 5:
        layer = parts[4].strip()
        if not layer:
            raise MissingField("layer")
        if _DOTS.match(layer):
            raise InvalidSegment("layer", layer)

    return ModelURN(
        ecosystem=ecosystem,
        model_type=model_type,
        source=source,
        id=model_id,
        version=version,
        layer=layer,
        format=fmt,
        raw=text,
    )
