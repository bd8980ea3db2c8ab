"""Option resolution engine.

Computes the effective value of an option across an ordered config set,
following dnsmasq's merge rules:

- FLAG: enabled if any file has a bare ``name`` line. A flag written with
  a value (``expand-hosts=1``) does not count, because dnsmasq rejects
  arguments to flag options.
- LAST_WINS: the last matching line in the whole path-ordered stream
  wins, whichever file it is in. The directory of the winning file is
  returned so relative paths can be resolved against it.
- MULTI: every matching line is kept, in file order then line order.

An option may be fed by several keys (``server`` and ``local``); the keys
are treated as one set. Key matching is case-sensitive.

Each resolver has a ``*_with_source`` variant that also returns the
provenance of the value(s). Provenance is computed as a separate pass so
the merge logic itself stays free of bookkeeping.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from masqctl.conf.directive import parse_directive
from masqctl.conf.options import OptionBehavior
from masqctl.conf.provenance import ValueProvenance

OptionKeys = str | tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Occurrence:
    """One directive line of the config set.

    Attributes:
        path: File containing the line.
        line_number: 1-based line number.
        key: Option key as written.
        value: Option value (empty for bare keys).
    """

    path: Path
    line_number: int
    key: str
    value: str


@dataclass(frozen=True, slots=True)
class LastWinsValue:
    """Resolved value of a last-wins option.

    Attributes:
        value: Value of the winning line, None when the option is absent.
        source_dir: Directory of the file with the winning line.
    """

    value: str | None = None
    source_dir: Path | None = None


class DirectiveIndex:
    """Directives of a config set, parsed once and grouped by key.

    Resolving every registered option scans the same lines many times;
    the index lets all those lookups share a single parse.
    """

    def __init__(self, paths: Sequence[Path], path_to_lines: Mapping[Path, Sequence[str]]) -> None:
        """Parse every file of the set.

        Args:
            paths: Files in load order.
            path_to_lines: Content of each file; missing entries read as empty.
        """
        self._by_key: dict[str, list[tuple[int, Occurrence]]] = {}
        sequence = 0
        for path in paths:
            for line_number, line in enumerate(path_to_lines.get(path, ()), start=1):
                parsed = parse_directive(line)
                if parsed is None:
                    continue
                key, value = parsed
                self._by_key.setdefault(key, []).append(
                    (sequence, Occurrence(path, line_number, key, value))
                )
                sequence += 1

    def find(self, names: OptionKeys) -> list[Occurrence]:
        """Get the occurrences of any of the given keys, in load order."""
        keys = (names,) if isinstance(names, str) else names
        if len(keys) == 1:
            return [occ for _, occ in self._by_key.get(keys[0], ())]
        merged = [item for key in dict.fromkeys(keys) for item in self._by_key.get(key, ())]
        merged.sort(key=lambda item: item[0])
        return [occ for _, occ in merged]


def find_occurrences(
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    names: OptionKeys,
    *,
    index: DirectiveIndex | None = None,
) -> list[Occurrence]:
    """Find every line setting an option, in load order.

    Args:
        paths: Files in load order.
        path_to_lines: Content of each file.
        names: Option key, or tuple of keys feeding one option.
        index: Pre-built index of the same set, to avoid re-parsing.

    Returns:
        Matching occurrences, file order then line order.
    """
    if index is None:
        index = DirectiveIndex(paths, path_to_lines)
    return index.find(names)


def resolve_flag(
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    names: OptionKeys,
    *,
    index: DirectiveIndex | None = None,
) -> bool:
    """Resolve a flag option.

    Returns:
        True if any file contains the bare option key.
    """
    return any(not occ.value for occ in find_occurrences(paths, path_to_lines, names, index=index))


def resolve_last_wins(
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    names: OptionKeys,
    *,
    index: DirectiveIndex | None = None,
) -> LastWinsValue:
    """Resolve a last-wins option.

    Returns:
        The value of the last matching line and the directory of its file,
        or an empty LastWinsValue when no file sets the option.
    """
    occurrences = find_occurrences(paths, path_to_lines, names, index=index)
    if not occurrences:
        return LastWinsValue()
    last = occurrences[-1]
    return LastWinsValue(value=last.value, source_dir=last.path.parent)


def resolve_multi(
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    names: OptionKeys,
    *,
    index: DirectiveIndex | None = None,
) -> list[str]:
    """Resolve a multi-value option.

    Returns:
        Every value, file order then line order, without de-duplication.
    """
    return [occ.value for occ in find_occurrences(paths, path_to_lines, names, index=index)]


def resolve(
    behavior: OptionBehavior,
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    names: OptionKeys,
    *,
    index: DirectiveIndex | None = None,
) -> bool | LastWinsValue | list[str]:
    """Resolve an option under the given merge behavior.

    Args:
        behavior: Merge behavior of the option.
        paths: Files in load order.
        path_to_lines: Content of each file.
        names: Option key, or tuple of keys feeding one option.
        index: Pre-built index of the same set.

    Returns:
        ``bool`` for FLAG, LastWinsValue for LAST_WINS, ``list[str]`` for MULTI.
    """
    if behavior == OptionBehavior.FLAG:
        return resolve_flag(paths, path_to_lines, names, index=index)
    if behavior == OptionBehavior.MULTI:
        return resolve_multi(paths, path_to_lines, names, index=index)
    return resolve_last_wins(paths, path_to_lines, names, index=index)


# =============================================================================
# Provenance pass
# =============================================================================


def resolve_flag_with_source(
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    names: OptionKeys,
    managed_file_path: Path | None,
    *,
    index: DirectiveIndex | None = None,
) -> tuple[bool, ValueProvenance | None]:
    """Resolve a flag option and the line that enables it.

    Returns:
        Tuple of (enabled, provenance of the first enabling line or None).
    """
    for occ in find_occurrences(paths, path_to_lines, names, index=index):
        if not occ.value:
            return True, ValueProvenance.for_file(occ.path, managed_file_path, occ.line_number)
    return False, None


def resolve_last_wins_with_source(
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    names: OptionKeys,
    managed_file_path: Path | None,
    *,
    index: DirectiveIndex | None = None,
) -> tuple[LastWinsValue, ValueProvenance | None]:
    """Resolve a last-wins option and the line that wins.

    Returns:
        Tuple of (value, provenance of the winning line or None).
    """
    occurrences = find_occurrences(paths, path_to_lines, names, index=index)
    if not occurrences:
        return LastWinsValue(), None
    last = occurrences[-1]
    return (
        LastWinsValue(value=last.value, source_dir=last.path.parent),
        ValueProvenance.for_file(last.path, managed_file_path, last.line_number),
    )


def resolve_multi_with_source(
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    names: OptionKeys,
    managed_file_path: Path | None,
    *,
    index: DirectiveIndex | None = None,
) -> tuple[list[str], list[ValueProvenance]]:
    """Resolve a multi-value option with one provenance per value.

    Returns:
        Tuple of (values, provenances); both lists have the same order and length.
    """
    values: list[str] = []
    sources: list[ValueProvenance] = []
    for occ in find_occurrences(paths, path_to_lines, names, index=index):
        values.append(occ.value)
        sources.append(ValueProvenance.for_file(occ.path, managed_file_path, occ.line_number))
    return values, sources
