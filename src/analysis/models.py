"""Data models for the release survey pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from versioning.models import PerlVersion


@dataclass(frozen=True)
class InstalledModule:
    """One module found in the local library tree."""
    name: str
    version: PerlVersion
    size: int
    path: str
    raw_version: Optional[str] = None

    @property
    def has_version(self) -> bool:
        """False when no version was declared or it was declared as a bare 0."""
        return self.raw_version not in (None, "", "0")

    @property
    def display_version(self) -> str:
        return self.raw_version or "0"


@dataclass
class CandidateRelease:
    """A release on the index that contains a given module version."""
    release: str
    distribution: str
    author: str
    version: PerlVersion
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ManifestModule:
    """A module provided by a release, as indexed."""
    name: str
    path: str
    version: PerlVersion
    size: int
    raw_version: Optional[str] = None


# module name -> ManifestModule
ReleaseManifest = Dict[str, ManifestModule]


@dataclass
class ScoredRelease:
    """A candidate release with its installed fraction."""
    candidate: CandidateRelease
    fraction_installed: float

    @property
    def release(self) -> str:
        return self.candidate.release

    @property
    def distribution(self) -> str:
        return self.candidate.distribution

    @property
    def author(self) -> str:
        return self.candidate.author

    @property
    def version(self) -> PerlVersion:
        return self.candidate.version

    @property
    def percent_installed(self) -> str:
        return f"{self.fraction_installed * 100:.2f}"


class LookupKind(Enum):
    """How a module's candidate releases were found."""
    EXACT = "exact"  # version and file size matched
    LOOSE = "loose"  # version matched, file size differed
    NONE = "none"  # version not on the index


@dataclass
class CandidateLookup:
    """Tagged result of candidate resolution for one module."""
    kind: LookupKind
    candidates: Dict[str, CandidateRelease] = field(default_factory=dict)

    @property
    def file_size_mismatch(self) -> bool:
        return self.kind == LookupKind.LOOSE

    @property
    def version_not_on_cpan(self) -> bool:
        return self.kind == LookupKind.NONE


@dataclass
class ModuleOutcome:
    """Per-module result of resolve, score and narrow."""
    module: InstalledModule
    lookup: Optional[CandidateLookup] = None
    best: List[ScoredRelease] = field(default_factory=list)
    note: str = ""
    dropped: bool = False
    error: Optional[str] = None


@dataclass
class DistributionEntry:
    """One candidate release of a distribution and the modules it explains."""
    dist: ScoredRelease
    modules: List[InstalledModule] = field(default_factory=list)
    alternatives: Set[str] = field(default_factory=set)


# distribution name -> release id -> DistributionEntry
DistributionAggregate = Dict[str, Dict[str, DistributionEntry]]


@dataclass
class ResolvedInstallation:
    """A chosen release (installed or remnant) ready for output."""
    release_data: Dict[str, Any]
    url: str
    modvers: str
    dist_data: ScoredRelease
    mods_in_rel: ReleaseManifest
    remnant: bool = False

    def as_dict(self) -> Dict[str, Any]:
        """Release metadata merged with the output shortcuts."""
        data = dict(self.release_data)
        data.update({
            "url": self.url,
            "modvers": self.modvers,
            "dist_data": self.dist_data,
            "mods_in_rel": self.mods_in_rel,
            "fraction_installed": self.dist_data.fraction_installed,
            "percent_installed": self.dist_data.percent_installed,
            "status": "remnant" if self.remnant else "installed",
        })
        return data
