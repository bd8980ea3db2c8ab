"""Unit tests for the option resolution engine."""

from pathlib import Path

from masqctl.conf.options import OptionBehavior
from masqctl.conf.resolution import (
    DirectiveIndex,
    LastWinsValue,
    find_occurrences,
    resolve,
    resolve_flag,
    resolve_flag_with_source,
    resolve_last_wins,
    resolve_last_wins_with_source,
    resolve_multi,
    resolve_multi_with_source,
)

A = Path("/etc/dnsmasq.conf")
B = Path("/etc/dnsmasq.d/b.conf")
M = Path("/etc/zz-dnsmasq-webui.conf")


def _set(*files: tuple[Path, list[str]]) -> tuple[list[Path], dict[Path, list[str]]]:
    """Build (paths, path_to_lines) from (path, lines) pairs."""
    return [p for p, _ in files], dict(files)


# =============================================================================
# Flags
# =============================================================================


class TestResolveFlag:
    """Tests for resolve_flag function."""

    def test_bare_key_enables(self) -> None:
        """A bare key anywhere enables the flag."""
        paths, lines = _set((A, ["port=53"]), (B, ["expand-hosts"]))
        assert resolve_flag(paths, lines, "expand-hosts") is True

    def test_absent(self) -> None:
        """No occurrence means disabled."""
        paths, lines = _set((A, ["port=53"]))
        assert resolve_flag(paths, lines, "expand-hosts") is False

    def test_key_with_value_does_not_count(self) -> None:
        """expand-hosts=1 is not a valid flag line."""
        paths, lines = _set((A, ["expand-hosts=1", "expand-hosts=true"]))
        assert resolve_flag(paths, lines, "expand-hosts") is False

    def test_commented_flag_does_not_count(self) -> None:
        """Commented lines are ignored."""
        paths, lines = _set((A, ["#expand-hosts", "# expand-hosts"]))
        assert resolve_flag(paths, lines, "expand-hosts") is False

    def test_case_sensitive(self) -> None:
        """Keys differing in case do not match."""
        paths, lines = _set((A, ["Expand-Hosts"]))
        assert resolve_flag(paths, lines, "expand-hosts") is False

    def test_source_is_first_enabling_line(self) -> None:
        """Provenance points at the first bare occurrence."""
        paths, lines = _set((A, ["expand-hosts=1", "expand-hosts"]), (M, ["expand-hosts"]))

        enabled, source = resolve_flag_with_source(paths, lines, "expand-hosts", M)

        assert enabled is True
        assert source is not None
        assert source.file_path == str(A)
        assert source.line_number == 2
        assert source.is_read_only

    def test_source_none_when_disabled(self) -> None:
        """Disabled flags have no source."""
        paths, lines = _set((A, []))
        assert resolve_flag_with_source(paths, lines, "expand-hosts", M) == (False, None)


# =============================================================================
# Last-wins
# =============================================================================


class TestResolveLastWins:
    """Tests for resolve_last_wins function."""

    def test_last_occurrence_wins_across_files(self) -> None:
        """The last line in load order wins."""
        paths, lines = _set((A, ["cache-size=100", "cache-size=150"]), (B, ["cache-size=200"]))

        result = resolve_last_wins(paths, lines, "cache-size")

        assert result == LastWinsValue(value="200", source_dir=B.parent)

    def test_order_follows_paths(self) -> None:
        """Reordering the paths changes the winner."""
        paths, lines = _set((B, ["cache-size=200"]), (A, ["cache-size=100"]))
        assert resolve_last_wins(paths, lines, "cache-size").value == "100"

    def test_absent(self) -> None:
        """No occurrence gives an empty value."""
        paths, lines = _set((A, ["port=53"]))
        assert resolve_last_wins(paths, lines, "cache-size") == LastWinsValue()

    def test_bare_key_gives_empty_string(self) -> None:
        """A bare key wins with an empty value."""
        paths, lines = _set((A, ["log-queries=extra", "log-queries"]))
        assert resolve_last_wins(paths, lines, "log-queries").value == ""

    def test_aliases_share_one_stream(self) -> None:
        """Alias keys compete with the canonical key in load order."""
        paths, lines = _set(
            (A, ["dhcp-leasefile=/var/a.leases"]),
            (B, ["dhcp-lease=/var/b.leases"]),
        )
        result = resolve_last_wins(paths, lines, ("dhcp-leasefile", "dhcp-lease"))
        assert result.value == "/var/b.leases"

    def test_source(self) -> None:
        """Provenance points at the winning line."""
        paths, lines = _set((A, ["cache-size=100"]), (M, ["", "cache-size=300"]))

        value, source = resolve_last_wins_with_source(paths, lines, "cache-size", M)

        assert value.value == "300"
        assert source is not None
        assert source.is_managed
        assert source.line_number == 2
        assert source.file_name == M.name


# =============================================================================
# Multi
# =============================================================================


class TestResolveMulti:
    """Tests for resolve_multi function."""

    def test_accumulates_in_order(self) -> None:
        """Values are kept in file order then line order."""
        paths, lines = _set(
            (A, ["server=1.1.1.1", "server=8.8.8.8"]),
            (B, ["server=9.9.9.9"]),
        )
        assert resolve_multi(paths, lines, "server") == ["1.1.1.1", "8.8.8.8", "9.9.9.9"]

    def test_duplicates_kept(self) -> None:
        """Identical values are not de-duplicated."""
        paths, lines = _set((A, ["server=1.1.1.1"]), (B, ["server=1.1.1.1"]))
        assert resolve_multi(paths, lines, "server") == ["1.1.1.1", "1.1.1.1"]

    def test_alias_interleaving(self) -> None:
        """server and local lines merge in load order."""
        paths, lines = _set(
            (A, ["local=/lan/", "server=1.1.1.1"]),
            (B, ["server=8.8.8.8", "local=/home/"]),
        )
        result = resolve_multi(paths, lines, ("server", "local"))
        assert result == ["/lan/", "1.1.1.1", "8.8.8.8", "/home/"]

    def test_sources_parallel_to_values(self) -> None:
        """One provenance per value, same order."""
        paths, lines = _set((A, ["server=1.1.1.1"]), (M, ["server=8.8.8.8"]))

        values, sources = resolve_multi_with_source(paths, lines, "server", M)

        assert values == ["1.1.1.1", "8.8.8.8"]
        assert [s.is_managed for s in sources] == [False, True]
        assert [s.line_number for s in sources] == [1, 1]


class TestDispatchAndIndex:
    """Tests for resolve and DirectiveIndex."""

    def test_resolve_dispatches_on_behavior(self) -> None:
        """resolve returns the behavior's result type."""
        paths, lines = _set((A, ["expand-hosts", "cache-size=5", "server=1.1.1.1"]))

        assert resolve(OptionBehavior.FLAG, paths, lines, "expand-hosts") is True
        assert resolve(OptionBehavior.LAST_WINS, paths, lines, "cache-size") == LastWinsValue(
            value="5", source_dir=A.parent
        )
        assert resolve(OptionBehavior.MULTI, paths, lines, "server") == ["1.1.1.1"]

    def test_index_matches_direct_scan(self) -> None:
        """A shared index gives the same occurrences as a fresh scan."""
        paths, lines = _set((A, ["server=1", "local=/x/"]), (B, ["server=2"]))
        index = DirectiveIndex(paths, lines)

        direct = find_occurrences(paths, lines, ("server", "local"))
        indexed = find_occurrences(paths, lines, ("server", "local"), index=index)

        assert direct == indexed
        assert [o.value for o in indexed] == ["1", "/x/", "2"]

    def test_missing_content_reads_empty(self) -> None:
        """Paths without content in the mapping contribute nothing."""
        assert resolve_multi([A, B], {A: ["server=1"]}, "server") == ["1"]
