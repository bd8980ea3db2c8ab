"""Effective dnsmasq configuration.

Builds the value of every registered option for a config set, plus a
parallel map recording where each value came from. Values are converted
according to the option's kind:

- INT values become ``int`` (None when not a valid integer)
- PATH values are resolved against the directory of the file that set
  them; for multi-value paths (``addn-hosts``) each element uses its own
  file's directory
- everything else is kept as the raw string
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from masqctl.conf.includes import resolve_path
from masqctl.conf.options import OPTIONS, OptionBehavior, OptionKind, canonical_name
from masqctl.conf.provenance import ValueProvenance
from masqctl.conf.resolution import (
    DirectiveIndex,
    resolve_flag,
    resolve_flag_with_source,
    resolve_last_wins,
    resolve_last_wins_with_source,
    resolve_multi_with_source,
)

ScalarValue = str | int | None


@dataclass(frozen=True, slots=True)
class EffectiveConfig:
    """Effective value of every registered option.

    Keys are canonical option names; aliases (``local``, ``dhcp-lease``)
    are folded into their canonical option.

    Attributes:
        flags: Flag options and whether they are enabled.
        values: Last-wins options; None when no file sets the option.
        lists: Multi-value options in load order.
    """

    flags: dict[str, bool] = field(default_factory=dict)
    values: dict[str, ScalarValue] = field(default_factory=dict)
    lists: dict[str, list[str]] = field(default_factory=dict)

    def get(self, name: str) -> bool | ScalarValue | list[str]:
        """Get the effective value of an option by name or alias.

        Returns:
            ``bool`` for flags, ``list[str]`` for multi-value options, the
            scalar value for last-wins options; None for unknown options.
        """
        key = canonical_name(name)
        if key in self.flags:
            return self.flags[key]
        if key in self.lists:
            return list(self.lists[key])
        return self.values.get(key)

    @property
    def addn_hosts(self) -> list[str]:
        """Additional hosts files, as absolute paths."""
        return list(self.lists.get("addn-hosts", []))

    @property
    def dhcp_lease_file(self) -> str | None:
        """DHCP lease file, as an absolute path."""
        value = self.values.get("dhcp-leasefile")
        return value if isinstance(value, str) else None

    @property
    def cache_size(self) -> int | None:
        """DNS cache size."""
        value = self.values.get("cache-size")
        return value if isinstance(value, int) else None

    @property
    def port(self) -> int | None:
        """DNS listening port."""
        value = self.values.get("port")
        return value if isinstance(value, int) else None

    @property
    def dhcp_hosts(self) -> list[str]:
        """Raw dhcp-host values."""
        return list(self.lists.get("dhcp-host", []))

    @property
    def servers(self) -> list[str]:
        """Upstream servers and local-only domains (``server`` and ``local``)."""
        return list(self.lists.get("server", []))

    @property
    def conf_dirs(self) -> list[str]:
        """Raw conf-dir values."""
        return list(self.lists.get("conf-dir", []))


@dataclass(frozen=True, slots=True)
class EffectiveConfigSources:
    """Provenance of every effective value.

    Attributes:
        single: Flag and last-wins options; None when the option is unset.
        multi: Multi-value options, one provenance per value in the same order.
    """

    single: dict[str, ValueProvenance | None] = field(default_factory=dict)
    multi: dict[str, list[ValueProvenance]] = field(default_factory=dict)

    def get(self, name: str) -> ValueProvenance | list[ValueProvenance] | None:
        """Get the provenance of an option by name or alias."""
        key = canonical_name(name)
        if key in self.multi:
            return list(self.multi[key])
        return self.single.get(key)


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _convert_scalar(kind: OptionKind, value: str | None, source_dir: Path | None) -> ScalarValue:
    """Convert a last-wins value according to its kind."""
    if kind == OptionKind.INT:
        return _to_int(value)
    if kind == OptionKind.PATH:
        if source_dir is None:
            return None
        resolved = resolve_path(value, source_dir)
        return str(resolved) if resolved is not None else None
    return value


def build_effective_config(
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    *,
    index: DirectiveIndex | None = None,
) -> EffectiveConfig:
    """Resolve every registered option over a config set.

    Args:
        paths: Files in load order.
        path_to_lines: Content of each file.
        index: Pre-built directive index of the same set.

    Returns:
        The effective configuration.
    """
    if index is None:
        index = DirectiveIndex(paths, path_to_lines)

    config = EffectiveConfig()
    for spec in OPTIONS:
        if spec.behavior == OptionBehavior.FLAG:
            config.flags[spec.name] = resolve_flag(paths, path_to_lines, spec.keys, index=index)
        elif spec.behavior == OptionBehavior.LAST_WINS:
            resolved = resolve_last_wins(paths, path_to_lines, spec.keys, index=index)
            config.values[spec.name] = _convert_scalar(spec.kind, resolved.value, resolved.source_dir)
        elif spec.kind == OptionKind.PATH:
            # Each element is relative to the file it came from
            config.lists[spec.name] = [
                str(resolved)
                for occ in index.find(spec.keys)
                if (resolved := resolve_path(occ.value, occ.path.parent)) is not None
            ]
        else:
            config.lists[spec.name] = [occ.value for occ in index.find(spec.keys)]
    return config


def build_effective_sources(
    paths: Sequence[Path],
    path_to_lines: Mapping[Path, Sequence[str]],
    managed_file_path: Path | None,
    *,
    index: DirectiveIndex | None = None,
) -> EffectiveConfigSources:
    """Resolve the provenance of every registered option over a config set.

    Args:
        paths: Files in load order.
        path_to_lines: Content of each file.
        managed_file_path: Managed file of the set, marks editable values.
        index: Pre-built directive index of the same set.

    Returns:
        Provenance records matching build_effective_config's values.
    """
    if index is None:
        index = DirectiveIndex(paths, path_to_lines)

    sources = EffectiveConfigSources()
    for spec in OPTIONS:
        if spec.behavior == OptionBehavior.FLAG:
            _, source = resolve_flag_with_source(
                paths, path_to_lines, spec.keys, managed_file_path, index=index
            )
            sources.single[spec.name] = source
        elif spec.behavior == OptionBehavior.LAST_WINS:
            _, source = resolve_last_wins_with_source(
                paths, path_to_lines, spec.keys, managed_file_path, index=index
            )
            sources.single[spec.name] = source
        elif spec.kind == OptionKind.PATH:
            sources.multi[spec.name] = [
                ValueProvenance.for_file(occ.path, managed_file_path, occ.line_number)
                for occ in index.find(spec.keys)
                if resolve_path(occ.value, occ.path.parent) is not None
            ]
        else:
            _, multi_sources = resolve_multi_with_source(
                paths, path_to_lines, spec.keys, managed_file_path, index=index
            )
            sources.multi[spec.name] = multi_sources
    return sources


def default_effective_config() -> EffectiveConfig:
    """Effective config of an empty config set: flags off, nothing set."""
    return build_effective_config([], {})


def default_effective_sources() -> EffectiveConfigSources:
    """Provenance of an empty config set: no sources."""
    return build_effective_sources([], {}, None)
