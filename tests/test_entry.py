"""Tests for numa_maps line parsing and normalization.

A line is ``<hex-address> <policy> [properties...]``.  Lines without a
valid address or a policy produce no entry; bad properties are skipped
and reported as diagnostics without losing the rest of the line.
"""

import pytest

from numa_maps.entry import LineParseResult, NumaMapEntry, TokenDiagnostic, parse_entry
from numa_maps.properties import NumaMapProperty, PropertyParseError

PAGE_4K = 4096
PAGE_2M = 2 * 1024 * 1024
CAT_ADDRESS = 93893825802240
VVAR_ADDRESS = 140736330227712
ANON_ADDRESS = 0x7FBD0C10F000
CAT_LINE = (
    "55655c223000 default file=/usr/bin/cat mapped=2 mapmax=3 active=0 N0=2 kernelpagesize_kB=4"
)
ANON_LINE = "7fbd0c10f000 default anon=5 dirty=5 active=1 N0=5 kernelpagesize_kB=4"
HUGE_LINE = (
    "7f0000000000 default file=/anon_hugepage huge anon=3 dirty=3 N1=3 kernelpagesize_kB=2048"
)


# ---------------------------------------------------------------------------
# Cycle 1: address and policy
# ---------------------------------------------------------------------------


class TestParseEntry:
    """Verify a line becomes an entry with every property in order."""

    def test_file_backed_line(self) -> None:
        """All six tokens survive in encounter order."""
        entry = NumaMapEntry.parse(CAT_LINE)
        assert entry is not None
        assert entry.address == CAT_ADDRESS
        assert entry.policy == "default"
        assert entry.properties == [
            NumaMapProperty.file("/usr/bin/cat"),
            NumaMapProperty.mapped(2),
            NumaMapProperty.mapmax(3),
            NumaMapProperty.active(0),
            NumaMapProperty.n(0, 2),
            NumaMapProperty.kernelpagesize(PAGE_4K),
        ]

    def test_address_and_policy_only(self) -> None:
        """A bare address and policy give an empty property list."""
        entry = NumaMapEntry.parse("7fffbaf86000 default")
        assert entry is not None
        assert entry.address == VVAR_ADDRESS
        assert entry.properties == []

    def test_policy_is_verbatim(self) -> None:
        """The policy label is not validated."""
        entry = NumaMapEntry.parse("1000 interleave:0-3 N0=1 N1=1")
        assert entry is not None
        assert entry.policy == "interleave:0-3"

    def test_arbitrary_whitespace(self) -> None:
        """Tabs, repeated spaces and the trailing newline are fine."""
        entry = NumaMapEntry.parse("  1000\tdefault   anon=1 \n")
        assert entry is not None
        assert entry.address == 0x1000  # noqa: PLR2004
        assert entry.properties == [NumaMapProperty.anon(1)]

    def test_duplicates_preserved(self) -> None:
        """Repeated keys are all kept."""
        entry = NumaMapEntry.parse("1000 default N0=1 N0=2 anon=1 anon=1")
        assert entry is not None
        assert entry.properties == [
            NumaMapProperty.n(0, 1),
            NumaMapProperty.n(0, 2),
            NumaMapProperty.anon(1),
            NumaMapProperty.anon(1),
        ]

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "   ",
            "\n",
            "zzzz default anon=1",
            "0x1000 default anon=1",
            "-1000 default anon=1",
            "1000",
        ],
    )
    def test_no_entry(self, line: str) -> None:
        """Missing or non-hex addresses and missing policies yield nothing."""
        result = parse_entry(line)
        assert result.entry is None
        assert result.diagnostics == ()


# ---------------------------------------------------------------------------
# Cycle 2: diagnostics
# ---------------------------------------------------------------------------


class TestDiagnostics:
    """Verify bad tokens are collected and parsing continues."""

    def test_bad_token_skipped(self) -> None:
        """One bad property does not discard the line."""
        result = parse_entry("1000 default anon=1 bogus dirty=x N0=2", line_number=7)
        assert result.entry is not None
        assert result.entry.properties == [NumaMapProperty.anon(1), NumaMapProperty.n(0, 2)]
        assert [d.token for d in result.diagnostics] == ["bogus", "dirty=x"]
        assert all(d.line_number == 7 for d in result.diagnostics)  # noqa: PLR2004

    def test_diagnostic_message(self) -> None:
        """The message names the bad key."""
        result = parse_entry("1000 default bogus=3")
        (diagnostic,) = result.diagnostics
        assert diagnostic.message == "unknown key/value: bogus=3"
        assert str(diagnostic) == (
            'Failed to parse numa_maps entry "bogus=3": unknown key/value: bogus=3'
        )

    def test_clean_line_has_no_diagnostics(self) -> None:
        """A well-formed line reports nothing."""
        assert parse_entry(CAT_LINE).diagnostics == ()

    def test_strict_raises(self) -> None:
        """Strict mode re-raises the first bad property."""
        with pytest.raises(PropertyParseError) as exc:
            parse_entry("1000 default anon=1 bogus", strict=True)
        assert exc.value.token == "bogus"

    def test_strict_ignores_bad_address(self) -> None:
        """Strict mode does not change how bad addresses are handled."""
        assert parse_entry("zzzz default", strict=True).entry is None

    def test_result_is_frozen(self) -> None:
        """LineParseResult and TokenDiagnostic are immutable."""
        result = LineParseResult(entry=None)
        with pytest.raises(AttributeError):
            result.entry = None  # type: ignore[misc]
        diagnostic = TokenDiagnostic("t", "m")
        with pytest.raises(AttributeError):
            diagnostic.token = "u"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Cycle 3: normalize
# ---------------------------------------------------------------------------


class TestNormalize:
    """Verify page counts become byte counts."""

    def test_anonymous_range(self) -> None:
        """Counts are scaled, the page size is dropped, the list is sorted."""
        entry = NumaMapEntry.parse(ANON_LINE)
        assert entry is not None
        assert entry.address == ANON_ADDRESS
        entry.normalize()
        assert entry.properties == [
            NumaMapProperty.n(0, 5 * PAGE_4K),
            NumaMapProperty.anon(5 * PAGE_4K),
            NumaMapProperty.dirty(5 * PAGE_4K),
            NumaMapProperty.active(PAGE_4K),
        ]

    def test_mapmax_not_scaled(self) -> None:
        """Mapmax keeps its process count."""
        entry = NumaMapEntry.parse(CAT_LINE)
        assert entry is not None
        entry.normalize()
        assert entry.properties == [
            NumaMapProperty.file("/usr/bin/cat"),
            NumaMapProperty.n(0, 2 * PAGE_4K),
            NumaMapProperty.mapped(2 * PAGE_4K),
            NumaMapProperty.mapmax(3),
            NumaMapProperty.active(0),
        ]

    def test_huge_pages(self) -> None:
        """A 2 MiB page size scales by 2 MiB."""
        entry = NumaMapEntry.parse(HUGE_LINE)
        assert entry is not None
        entry.normalize()
        assert NumaMapProperty.n(1, 3 * PAGE_2M) in entry.properties
        assert NumaMapProperty.huge() in entry.properties

    def test_without_page_size_is_noop(self) -> None:
        """No page size means order and values stay as parsed."""
        entry = NumaMapEntry.parse("1000 default dirty=2 anon=2 N0=2 heap")
        assert entry is not None
        before = list(entry.properties)
        entry.normalize()
        assert entry.properties == before

    def test_second_normalize_is_noop(self) -> None:
        """Once the page size is consumed, normalize does nothing."""
        entry = NumaMapEntry.parse(ANON_LINE)
        assert entry is not None
        entry.normalize()
        once = list(entry.properties)
        entry.normalize()
        assert entry.properties == once

    def test_renormalize_after_new_page_size(self) -> None:
        """Re-inserting a page size allows another pass."""
        entry = NumaMapEntry(1, "default", [NumaMapProperty.anon(1)])
        entry.normalize()
        entry.properties.append(NumaMapProperty.kernelpagesize(2))
        entry.normalize()
        entry.properties.append(NumaMapProperty.kernelpagesize(3))
        entry.normalize()
        assert entry.properties == [NumaMapProperty.anon(6)]

    def test_insertion_order_irrelevant(self) -> None:
        """Same properties in a different order compare equal once normalized."""
        a = NumaMapEntry.parse("1000 default anon=1 N0=1 kernelpagesize_kB=4 file=/x")
        b = NumaMapEntry.parse("1000 default file=/x kernelpagesize_kB=4 N0=1 anon=1")
        assert a is not None
        assert b is not None
        assert a != b
        a.normalize()
        b.normalize()
        assert a == b

    def test_multiple_page_sizes_use_first(self) -> None:
        """The first page size wins and every page-size property is dropped."""
        entry = NumaMapEntry.parse("1000 default anon=1 kernelpagesize_kB=4 kernelpagesize_kB=8")
        assert entry is not None
        assert entry.page_size() == PAGE_4K
        entry.normalize()
        assert entry.properties == [NumaMapProperty.anon(PAGE_4K)]


# ---------------------------------------------------------------------------
# Cycle 4: helpers
# ---------------------------------------------------------------------------


class TestEntryHelpers:
    """Verify node sizes, rendering and serialization."""

    def test_node_sizes(self) -> None:
        """N values are summed per node."""
        entry = NumaMapEntry.parse("1000 default N0=1 N1=4 N0=2")
        assert entry is not None
        assert entry.node_sizes() == {0: 3, 1: 4}

    def test_to_line(self) -> None:
        """Rendering a parsed line gives the line back."""
        entry = NumaMapEntry.parse(CAT_LINE)
        assert entry is not None
        assert entry.to_line() == CAT_LINE

    def test_dict_round_trip(self) -> None:
        """from_dict(to_dict()) gives an equal entry."""
        entry = NumaMapEntry.parse(CAT_LINE)
        assert entry is not None
        assert NumaMapEntry.from_dict(entry.to_dict()) == entry

    def test_from_dict_rejects_string_address(self) -> None:
        """A hex string is not an address; snapshots store integers."""
        with pytest.raises(TypeError):
            NumaMapEntry.from_dict({"address": "1000", "policy": "default"})

    def test_from_dict_rejects_non_string_policy(self) -> None:
        """The policy must be text."""
        with pytest.raises(TypeError):
            NumaMapEntry.from_dict({"address": 4096, "policy": 0})

    def test_entries_order_by_address(self) -> None:
        """Entries sort by address first."""
        low = NumaMapEntry(0x1000, "default")
        high = NumaMapEntry(0x2000, "default")
        assert sorted([high, low]) == [low, high]
