from __future__ import annotations

import re

_CAMEL_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")


def to_snake_case(value: str) -> str:
    return _CAMEL_BOUNDARY_RE.sub(r"\1_\2", value).lower()


def to_pascal_case(value: str) -> str:
    # "a__b" -> "AB": empty segments contribute nothing.
    return "".join(part[:1].upper() + part[1:].lower() for part in value.split("_"))
