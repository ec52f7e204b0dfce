"""Shared fixtures: an in-memory release index and inventory helpers."""

import pytest

from analysis.context import SurveyConfig, SurveyContext
from analysis.models import InstalledModule
from inventory.perllocal import PerllocalHint
from versioning.parser import parse_version


def make_module(name, version, size=100, path=None):
    """Build an InstalledModule as the scanner would."""
    raw = None if version is None else str(version)
    return InstalledModule(
        name=name,
        version=parse_version(raw),
        size=size,
        path=path or "/lib/" + name.replace("::", "/") + ".pm",
        raw_version=raw,
    )


def inventory_of(*modules):
    return {m.name: m for m in modules}


class FakeIndex:
    """Stands in for MetaCpanClient.

    releases maps release id -> dict(author, distribution, version,
    download_url, modules=[(name, version, size, path)]).
    """

    def __init__(self, releases, missing_metadata=(), fail_modules=(), exceed=()):
        self.releases = releases
        self.missing_metadata = set(missing_metadata)
        self.fail_modules = set(fail_modules)
        self.exceed = set(exceed)
        self.calls = 0
        self.module_queries = []

    def query_files_by_module(self, name, version_variants, file_size=None):
        from common.errors import RemoteQueryFailed, ResultCountExceeded

        self.calls += 1
        self.module_queries.append((name, tuple(version_variants), file_size))
        if name in self.fail_modules:
            raise RemoteQueryFailed(f"boom {name}")
        if name in self.exceed:
            raise ResultCountExceeded(f"query_files_by_module({name})", 999)
        hits = []
        for release, rel in sorted(self.releases.items()):
            for mod_name, mod_version, size, path in rel["modules"]:
                if mod_name != name or str(mod_version) not in version_variants:
                    continue
                if file_size and size != file_size:
                    continue
                hits.append({
                    "release": release,
                    "author": rel["author"],
                    "distribution": rel["distribution"],
                    "version": rel["version"],
                    "path": path,
                })
        return hits

    def query_files_by_release(self, author, release):
        self.calls += 1
        rel = self.releases.get(release)
        if not rel or rel["author"] != author:
            return []
        return [
            {
                "path": path,
                "name": path.rsplit("/", 1)[-1],
                "stat": {"size": size},
                "module": [{"name": mod_name, "version": mod_version}],
            }
            for mod_name, mod_version, size, path in rel["modules"]
        ]

    def release(self, author, release):
        self.calls += 1
        if release in self.missing_metadata or release not in self.releases:
            return None
        rel = self.releases[release]
        return {
            "name": release,
            "author": author,
            "distribution": rel["distribution"],
            "version": rel["version"],
            "download_url": rel.get(
                "download_url",
                f"https://cpan.metacpan.org/authors/id/X/XX/{author}/{release}.tar.gz",
            ),
        }


def release_entry(distribution, version, modules, author="AUTHOR"):
    return {
        "author": author,
        "distribution": distribution,
        "version": version,
        "modules": [
            (name, mod_version, size, "lib/" + name.replace("::", "/") + ".pm")
            for name, mod_version, size in modules
        ],
    }


@pytest.fixture
def make_context():
    """Factory building a SurveyContext around a FakeIndex."""

    def _make(index, perllocal=None, **config_kwargs):
        config = SurveyConfig(**config_kwargs)
        hint = PerllocalHint([], config.distro_key_module_names)
        if perllocal is not None:
            hint._versions = dict(perllocal)  # pylint: disable=protected-access
        return SurveyContext(index, config=config, hint=hint)

    return _make
