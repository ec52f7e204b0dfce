"""Parsing utilities for Perl version strings."""

import re
from typing import Any, List, Optional

from .models import PerlVersion, VersionParseError

_DOTTED_RE = re.compile(r"^v(\d+(?:\.\d+)*)(?:_(\d+))?$|^(\d+(?:\.\d+){2,})(?:_(\d+))?$")
_DECIMAL_RE = re.compile(r"^(\d*)(?:\.(\d*))?(?:_(\d+))?$")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def looks_like_number(text: Any) -> bool:
    """Return True if text is a plain integer/float literal."""
    return bool(_NUMBER_RE.match(str(text).strip()))


def parse_version(raw: Optional[Any]) -> PerlVersion:
    """Parse raw into a PerlVersion.

    None, empty text and "undef" are treated as 0 since an unversioned
    module is still a valid query subject.

    Raises:
        VersionParseError: text is neither decimal nor dotted-decimal.
    """
    if isinstance(raw, PerlVersion):
        return raw
    text = "" if raw is None else str(raw).strip()
    if text in ("", "undef"):
        return PerlVersion(original="0", components=(0,))

    m = _DOTTED_RE.match(text)
    if m:
        body = m.group(1) or m.group(3)
        alpha_part = m.group(2) or m.group(4)
        comps = [int(c) for c in body.split(".")]
        if alpha_part:
            comps.append(int(alpha_part))
        while len(comps) < 3:
            comps.append(0)
        return PerlVersion(original=text, components=tuple(comps), dotted=True, alpha=bool(alpha_part))

    m = _DECIMAL_RE.match(text)
    if m and (m.group(1) or m.group(2)):
        integer = int(m.group(1) or 0)
        fraction = (m.group(2) or "") + (m.group(3) or "")
        comps = [integer]
        if fraction:
            fraction += "0" * (-len(fraction) % 3)
            comps.extend(int(fraction[i:i + 3]) for i in range(0, len(fraction), 3))
        return PerlVersion(original=text, components=tuple(comps), alpha=bool(m.group(3)))

    raise VersionParseError(f"Invalid version format: {text!r}")


def query_variants(raw: Optional[Any]) -> List[str]:
    """Return the equivalent encodings an index may have stored for raw.

    The raw text, the canonical string form and the canonical numeric form
    all identify the same version; a match on any of them counts.
    """
    version = parse_version(raw)
    raw_text = version.original if raw is None or isinstance(raw, PerlVersion) else str(raw).strip() or "0"
    variants: List[str] = []
    for v in (raw_text, version.stringify(), version.numify()):
        if v not in variants:
            variants.append(v)
    return variants
