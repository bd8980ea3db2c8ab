"""dnsmasq config engine.

Resolves the files of a dnsmasq config set, computes effective option
values with their provenance, and writes the one managed file masqctl owns.
"""

from masqctl.conf.cache import (
    CacheState,
    ConfigSetCache,
    ConfigSetSnapshot,
    build_snapshot,
)
from masqctl.conf.dhcp_host import (
    DhcpHostEntry,
    assign_ids,
    dhcp_host_to_line,
    parse_dhcp_host_line,
)
from masqctl.conf.effective import (
    EffectiveConfig,
    EffectiveConfigSources,
    build_effective_config,
    build_effective_sources,
)
from masqctl.conf.errors import (
    MacConflictError,
    ManagedFileError,
    MasqConfigError,
    OperationCancelledError,
)
from masqctl.conf.includes import build_config_set, resolve_includes
from masqctl.conf.lines import ManagedConfigContent
from masqctl.conf.models import ConfigFile, ConfigSet, FileRole
from masqctl.conf.options import OptionBehavior, OptionKind, OptionSection, OptionSpec
from masqctl.conf.provenance import EditHint, ValueProvenance, readonly_hint
from masqctl.conf.writer import ManagedConfigWriter, OptionChange

__all__ = [
    "CacheState",
    "ConfigFile",
    "ConfigSet",
    "ConfigSetCache",
    "ConfigSetSnapshot",
    "DhcpHostEntry",
    "EditHint",
    "EffectiveConfig",
    "EffectiveConfigSources",
    "FileRole",
    "MacConflictError",
    "ManagedConfigContent",
    "ManagedConfigWriter",
    "ManagedFileError",
    "MasqConfigError",
    "OperationCancelledError",
    "OptionBehavior",
    "OptionChange",
    "OptionKind",
    "OptionSection",
    "OptionSpec",
    "ValueProvenance",
    "assign_ids",
    "build_config_set",
    "build_effective_config",
    "build_effective_sources",
    "build_snapshot",
    "dhcp_host_to_line",
    "parse_dhcp_host_line",
    "readonly_hint",
    "resolve_includes",
]
