"""Tests for fractional-installation scoring."""

import pytest

from analysis.models import CandidateRelease, ManifestModule
from analysis.scorer import dist_fraction_installed, module_weight, pick_best, release_manifest, score_manifest
from common.errors import RemoteQueryFailed
from versioning.parser import parse_version
from conftest import FakeIndex, inventory_of, make_module, release_entry


def _manifest(*entries):
    return {
        name: ManifestModule(name=name, path=f"lib/{name}.pm", version=parse_version(ver), size=size, raw_version=ver)
        for name, ver, size in entries
    }


def _candidate(release, distribution, version, author="AUTHOR"):
    return CandidateRelease(release=release, distribution=distribution, author=author, version=parse_version(version))


class TestScoreManifest:
    """Pure scoring of one manifest against the inventory."""

    def test_half_installed(self):
        inventory = inventory_of(make_module("Foo::Bar", "1.2", size=500))
        manifest = _manifest(("Foo::Bar", "1.2", 500), ("Foo::Qux", "1.2", 300))
        assert score_manifest(manifest, inventory) == 0.5

    def test_empty_manifest_is_zero(self):
        assert score_manifest({}, inventory_of(make_module("Foo", "1"))) == 0

    def test_size_mismatch_is_weak(self):
        inventory = inventory_of(make_module("Foo", "1.0", size=10))
        manifest = _manifest(("Foo", "1.0", 11))
        assert score_manifest(manifest, inventory) == pytest.approx(0.1)
        assert score_manifest(manifest, inventory, 0.25) == pytest.approx(0.25)

    def test_version_mismatch_scores_nothing(self):
        inventory = inventory_of(make_module("Foo", "1.0", size=10))
        assert score_manifest(_manifest(("Foo", "1.1", 10)), inventory) == 0

    def test_equivalent_version_encodings_match(self):
        inventory = inventory_of(make_module("Foo", "v1.2.3", size=10))
        assert score_manifest(_manifest(("Foo", "1.002003", 10)), inventory) == 1.0

    def test_idempotent_and_bounded(self):
        inventory = inventory_of(make_module("A", "1", size=1), make_module("B", "2", size=5))
        manifest = _manifest(("A", "1", 1), ("B", "2", 6), ("C", "3", 1))
        first = score_manifest(manifest, inventory)
        assert first == score_manifest(manifest, inventory)
        assert 0 <= first <= 1


def test_module_weight_absent_module():
    entry = _manifest(("Foo", "1", 1))["Foo"]
    assert module_weight(None, entry, 0.1) == 0.0


class TestReleaseManifest:
    """Manifest fetching and memoization."""

    def test_memoized_per_run(self, make_context):
        index = FakeIndex({"Foo-1.0": release_entry("Foo", "1.0", [("Foo", "1.0", 10)])})
        ctx = make_context(index)

        first = release_manifest(ctx, "AUTHOR", "Foo-1.0")
        second = release_manifest(ctx, "AUTHOR", "Foo-1.0")

        assert first is second
        assert list(first) == ["Foo"]
        assert index.calls == 1

    def test_failure_yields_empty_and_is_not_memoized(self, make_context):
        index = FakeIndex({"Foo-1.0": release_entry("Foo", "1.0", [("Foo", "1.0", 10)])})
        ctx = make_context(index)
        original = index.query_files_by_release

        def failing(author, release):
            raise RemoteQueryFailed("down")

        index.query_files_by_release = failing
        assert release_manifest(ctx, "AUTHOR", "Foo-1.0") == {}
        index.query_files_by_release = original
        assert list(release_manifest(ctx, "AUTHOR", "Foo-1.0")) == ["Foo"]


class TestPickBest:
    """Tie selection across candidates."""

    def test_scenario_half_installed(self, make_context):
        index = FakeIndex({
            "Foo-Baz-1.2": release_entry("Foo-Baz", "1.2", [("Foo::Bar", "1.2", 500), ("Foo::Qux", "1.2", 300)]),
        })
        ctx = make_context(index)
        inventory = inventory_of(make_module("Foo::Bar", "1.2", size=500))

        assert dist_fraction_installed(ctx, "AUTHOR", "Foo-Baz-1.2", inventory) == 0.5
        best = pick_best(ctx, {"Foo-Baz-1.2": _candidate("Foo-Baz-1.2", "Foo-Baz", "1.2")}, inventory)
        assert [b.release for b in best] == ["Foo-Baz-1.2"]
        assert best[0].percent_installed == "50.00"

    def test_returns_all_ties_at_maximum(self, make_context):
        index = FakeIndex({
            "Foo-1.0": release_entry("Foo", "1.0", [("Foo", "1.0", 10)]),
            "Foo-1.1": release_entry("Foo", "1.1", [("Foo", "1.0", 10)]),
            "Foo-0.9": release_entry("Foo", "0.9", [("Foo", "1.0", 10), ("Foo::Old", "0.9", 3)]),
        })
        ctx = make_context(index)
        inventory = inventory_of(make_module("Foo", "1.0", size=10))
        candidates = {r: _candidate(r, "Foo", r.split("-")[1]) for r in index.releases}

        best = pick_best(ctx, candidates, inventory)

        assert [b.release for b in best] == ["Foo-1.0", "Foo-1.1"]
        assert all(b.fraction_installed == 1.0 for b in best)

    def test_empty_candidates(self, make_context):
        assert pick_best(make_context(FakeIndex({})), {}, {}) == []

    def test_non_empty_input_gives_non_empty_ties(self, make_context):
        index = FakeIndex({})
        ctx = make_context(index)
        best = pick_best(ctx, {"Gone-1": _candidate("Gone-1", "Gone", "1")}, {})
        assert [b.fraction_installed for b in best] == [0]
