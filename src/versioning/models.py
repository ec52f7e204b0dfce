"""Data models for Perl module and release versions."""

from dataclasses import dataclass, field
from functools import total_ordering
from typing import Tuple


class VersionParseError(ValueError):
    """Raised when text cannot be interpreted as a Perl version."""


@total_ordering
@dataclass(frozen=True)
class PerlVersion:
    """Canonical comparable Perl version.

    Decimal versions ("1.23", "1.002001") and dotted-decimal versions
    ("v1.2.3", "1.2.3") share one component representation, so "1.002003"
    and "v1.2.3" compare equal just as they do for Perl's version.pm.
    Equality and ordering ignore trailing zero components.
    """

    original: str
    components: Tuple[int, ...]
    dotted: bool = False
    alpha: bool = field(default=False, compare=False)

    @property
    def _key(self) -> Tuple[int, ...]:
        comps = list(self.components)
        while len(comps) > 1 and comps[-1] == 0:
            comps.pop()
        return tuple(comps)

    def __eq__(self, other):
        if not isinstance(other, PerlVersion):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other):
        if not isinstance(other, PerlVersion):
            return NotImplemented
        return self._key < other._key

    def __hash__(self):
        return hash(self._key)

    def __str__(self):
        return self.stringify()

    def is_zero(self) -> bool:
        """True for an unset/undef version."""
        return self._key == (0,)

    def stringify(self) -> str:
        """Canonical string form: v-string for dotted input, else the decimal text."""
        if self.dotted:
            return "v" + ".".join(str(c) for c in self.components)
        return self.original.replace("_", "") if self.alpha else self.original

    def numify(self) -> str:
        """Canonical numeric form, e.g. "1.002003" for v1.2.3."""
        if not self.dotted:
            text = self.original.replace("_", "")
            if text.startswith("."):
                text = "0" + text
            return text
        head, *rest = self.components
        return f"{head}." + "".join(f"{c:03d}" for c in rest)
