"""Tests for narrowing tied releases."""

import logging

from analysis.disambiguator import disambiguate, narrow
from analysis.models import CandidateRelease, ScoredRelease
from inventory.perllocal import PerllocalHint
from versioning.parser import parse_version
from conftest import make_module


def _scored(release, distribution, fraction=1.0):
    version = release.rsplit("-", 1)[1]
    return ScoredRelease(
        candidate=CandidateRelease(
            release=release, distribution=distribution, author="AUTHOR", version=parse_version(version)
        ),
        fraction_installed=fraction,
    )


def _hint(versions):
    hint = PerllocalHint([])
    hint._versions = dict(versions)  # pylint: disable=protected-access
    return hint


class TestNarrow:
    """Installation-log narrowing."""

    def test_keeps_releases_recorded_in_log(self):
        tied = [_scored("Foo-1.0", "Foo"), _scored("Foo-Fork-1.0", "Foo-Fork")]
        best, note = narrow(tied, _hint({"Foo::Fork": "1.0"}))
        assert [b.release for b in best] == ["Foo-Fork-1.0"]
        assert note == "narrowed from 2 via perllocal"

    def test_nothing_recorded_keeps_all(self):
        tied = [_scored("Foo-1.0", "Foo"), _scored("Foo-Fork-1.0", "Foo-Fork")]
        best, note = narrow(tied, _hint({}))
        assert best == tied
        assert note == ""

    def test_all_recorded_keeps_all(self):
        tied = [_scored("Foo-1.0", "Foo"), _scored("Foo-Fork-1.0", "Foo-Fork")]
        best, _ = narrow(tied, _hint({"Foo": "1.0", "Foo::Fork": "1.0"}))
        assert best == tied

    def test_single_release_untouched(self):
        tied = [_scored("Foo-1.0", "Foo")]
        assert narrow(tied, _hint({})) == (tied, "")

    def test_override_table_used(self):
        hint = PerllocalHint([], {"libwww-perl": "LWP"})
        hint._versions = {"LWP": "6.05"}  # pylint: disable=protected-access
        tied = [_scored("libwww-perl-6.05", "libwww-perl"), _scored("LWP-Clone-6.05", "LWP-Clone")]
        best, _ = narrow(tied, hint)
        assert [b.release for b in best] == ["libwww-perl-6.05"]


class TestDisambiguate:
    """Dropping modules that can't choose between releases."""

    def test_unversioned_module_with_ties_is_dropped(self, caplog):
        tied = [_scored("Foo-1.0", "Foo"), _scored("Foo-1.1", "Foo")]
        with caplog.at_level(logging.WARNING):
            best, _, dropped = disambiguate(tied, make_module("Foo::Util", None), _hint({}))
        assert dropped is True
        assert len(best) == 2
        assert any(getattr(r, "event", None) == "unresolvable_module" for r in caplog.records)

    def test_versioned_module_keeps_ties(self):
        tied = [_scored("Foo-1.0", "Foo"), _scored("Foo-1.1", "Foo")]
        best, note, dropped = disambiguate(tied, make_module("Foo", "1.0"), _hint({}))
        assert dropped is False
        assert [b.release for b in best] == ["Foo-1.0", "Foo-1.1"]
        assert note == ""

    def test_narrowed_unversioned_module_is_kept(self):
        tied = [_scored("Foo-1.0", "Foo"), _scored("Bar-1.0", "Bar")]
        best, note, dropped = disambiguate(tied, make_module("Foo::Util", None), _hint({"Bar": "1.0"}))
        assert dropped is False
        assert [b.release for b in best] == ["Bar-1.0"]
        assert note.startswith("narrowed from 2")

    def test_unique_best(self):
        tied = [_scored("Foo-1.0", "Foo")]
        assert disambiguate(tied, make_module("Foo", None), _hint({})) == (tied, "", False)

    def test_zero_padded_version_counts_as_declared(self):
        assert make_module("Foo", "0.00").has_version is True
        assert make_module("Foo", "0").has_version is False
        assert make_module("Foo", "").has_version is False
        tied = [_scored("Foo-1.0", "Foo"), _scored("Foo-1.1", "Foo")]
        _, _, dropped = disambiguate(tied, make_module("Foo::Util", "0.00"), _hint({}))
        assert dropped is False
