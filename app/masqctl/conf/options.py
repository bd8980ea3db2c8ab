"""dnsmasq option registry and behavior map.

Every option the engine resolves is registered here with:

- a merge behavior (how repeated occurrences across the config set combine)
- a parsing kind (how the raw value is converted)
- a section used to group options for display

The catalog covers a practical subset of dnsmasq's options, not its full
grammar. Options that are not registered still resolve: the behavior map
treats them as last-wins so an unrecognized key never breaks resolution.

Option names are matched case-sensitively, exactly as dnsmasq does.
"""

from dataclasses import dataclass
from enum import Enum


class OptionBehavior(str, Enum):
    """How repeated occurrences of an option combine.

    Attributes:
        FLAG: Enabled when a bare ``name`` line appears anywhere; takes no value.
        LAST_WINS: The last occurrence across the ordered config set wins.
        MULTI: Every occurrence is kept, in file order then line order.
    """

    FLAG = "flag"
    LAST_WINS = "last_wins"
    MULTI = "multi"


class OptionKind(str, Enum):
    """How an option's raw value is interpreted.

    Attributes:
        FLAG: No value.
        STRING: Opaque string value.
        INT: Integer value; unparseable values resolve to None.
        PATH: Filesystem path, relative to the directory of the file that set it.
        DOMAIN: Domain name, optionally with a range or interface.
        DHCP_HOST: Structured dhcp-host value (see masqctl.conf.dhcp_host).
        DHCP_RANGE: DHCP address range.
        DHCP_OPTION: DHCP option number/name and value.
        SERVER: Upstream server or local-only domain.
        ADDRESS: Domain to address mapping.
        RAW: Value kept verbatim without interpretation.
    """

    FLAG = "flag"
    STRING = "string"
    INT = "int"
    PATH = "path"
    DOMAIN = "domain"
    DHCP_HOST = "dhcp_host"
    DHCP_RANGE = "dhcp_range"
    DHCP_OPTION = "dhcp_option"
    SERVER = "server"
    ADDRESS = "address"
    RAW = "raw"


class OptionSection(str, Enum):
    """Display grouping of options.

    Attributes:
        HOSTS: Hosts files and local name handling.
        RESOLVER: Upstream resolution and DNS filtering.
        DNS_RECORDS: Locally served DNS records.
        DHCP: DHCP and router advertisement.
        TFTP_PXE: TFTP server and PXE boot.
        DNSSEC: DNSSEC validation.
        CACHE: DNS cache sizing and TTLs.
        PROCESS: Process, networking, logging and includes.
    """

    HOSTS = "hosts"
    RESOLVER = "resolver"
    DNS_RECORDS = "dns-records"
    DHCP = "dhcp"
    TFTP_PXE = "tftp-pxe"
    DNSSEC = "dnssec"
    CACHE = "cache"
    PROCESS = "process"


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """A registered dnsmasq option.

    Attributes:
        name: Canonical option name (the key of its effective value).
        behavior: Merge behavior.
        kind: Value parsing kind.
        section: Display section.
        aliases: Other keys that feed the same logical value.
    """

    name: str
    behavior: OptionBehavior
    kind: OptionKind
    section: OptionSection
    aliases: tuple[str, ...] = ()

    @property
    def keys(self) -> tuple[str, ...]:
        """All config keys that feed this option, canonical name first."""
        return (self.name, *self.aliases)


def _flags(section: OptionSection, *names: str) -> list[OptionSpec]:
    return [OptionSpec(n, OptionBehavior.FLAG, OptionKind.FLAG, section) for n in names]


def _last(
    name: str,
    section: OptionSection,
    kind: OptionKind = OptionKind.STRING,
    aliases: tuple[str, ...] = (),
) -> OptionSpec:
    return OptionSpec(name, OptionBehavior.LAST_WINS, kind, section, aliases)


def _multi(
    name: str,
    section: OptionSection,
    kind: OptionKind = OptionKind.STRING,
    aliases: tuple[str, ...] = (),
) -> OptionSpec:
    return OptionSpec(name, OptionBehavior.MULTI, kind, section, aliases)


_S = OptionSection
_K = OptionKind

OPTIONS: tuple[OptionSpec, ...] = (
    # Hosts
    *_flags(_S.HOSTS, "no-hosts", "expand-hosts", "localise-queries"),
    _multi("addn-hosts", _S.HOSTS, _K.PATH),
    _last("hostsdir", _S.HOSTS, _K.PATH),
    # Resolver
    *_flags(
        _S.RESOLVER,
        "bogus-priv",
        "strict-order",
        "all-servers",
        "no-resolv",
        "domain-needed",
        "no-poll",
        "stop-dns-rebind",
        "rebind-localhost-ok",
        "clear-on-reload",
        "filterwin2k",
        "filter-A",
        "filter-AAAA",
        "dns-loop-detect",
    ),
    _multi("server", _S.RESOLVER, _K.SERVER, aliases=("local",)),
    _multi("rev-server", _S.RESOLVER, _K.SERVER),
    _multi("resolv-file", _S.RESOLVER, _K.PATH),
    _multi("rebind-domain-ok", _S.RESOLVER),
    _multi("bogus-nxdomain", _S.RESOLVER),
    _multi("ignore-address", _S.RESOLVER),
    _multi("alias", _S.RESOLVER),
    _multi("filter-rr", _S.RESOLVER),
    _last("edns-packet-max", _S.RESOLVER, _K.INT),
    _last("query-port", _S.RESOLVER, _K.INT),
    _last("port-limit", _S.RESOLVER, _K.INT),
    _last("min-port", _S.RESOLVER, _K.INT),
    _last("max-port", _S.RESOLVER, _K.INT),
    _last("fast-dns-retry", _S.RESOLVER),
    # DNS records
    *_flags(_S.DNS_RECORDS, "localmx", "selfmx"),
    _multi("address", _S.DNS_RECORDS, _K.ADDRESS),
    _multi("cname", _S.DNS_RECORDS),
    _multi("mx-host", _S.DNS_RECORDS),
    _last("mx-target", _S.DNS_RECORDS),
    _multi("srv-host", _S.DNS_RECORDS),
    _multi("ptr-record", _S.DNS_RECORDS),
    _multi("txt-record", _S.DNS_RECORDS),
    _multi("naptr-record", _S.DNS_RECORDS),
    _multi("host-record", _S.DNS_RECORDS),
    _multi("dynamic-host", _S.DNS_RECORDS),
    _multi("interface-name", _S.DNS_RECORDS),
    _multi("auth-server", _S.DNS_RECORDS),
    _last("auth-ttl", _S.DNS_RECORDS, _K.INT),
    _multi("ipset", _S.DNS_RECORDS),
    _multi("nftset", _S.DNS_RECORDS),
    # DHCP
    *_flags(
        _S.DHCP,
        "dhcp-authoritative",
        "leasefile-ro",
        "read-ethers",
        "dhcp-rapid-commit",
        "enable-ra",
        "log-dhcp",
        "quiet-dhcp",
        "quiet-dhcp6",
        "quiet-ra",
        "dhcp-broadcast",
        "dhcp-sequential-ip",
    ),
    _multi("domain", _S.DHCP, _K.DOMAIN),
    _multi("dhcp-range", _S.DHCP, _K.DHCP_RANGE),
    _multi("dhcp-host", _S.DHCP, _K.DHCP_HOST),
    _multi("dhcp-option", _S.DHCP, _K.DHCP_OPTION),
    _multi("dhcp-option-force", _S.DHCP, _K.DHCP_OPTION),
    _multi("dhcp-match", _S.DHCP),
    _multi("dhcp-boot", _S.DHCP),
    _multi("dhcp-ignore", _S.DHCP),
    _multi("dhcp-vendorclass", _S.DHCP),
    _multi("dhcp-userclass", _S.DHCP),
    _multi("dhcp-mac", _S.DHCP),
    _multi("dhcp-name-match", _S.DHCP),
    _multi("dhcp-ignore-names", _S.DHCP),
    _multi("dhcp-hostsfile", _S.DHCP, _K.PATH),
    _multi("dhcp-optsfile", _S.DHCP, _K.PATH),
    _multi("dhcp-hostsdir", _S.DHCP, _K.PATH),
    _multi("ra-param", _S.DHCP),
    _multi("slaac", _S.DHCP),
    _multi("no-dhcp-interface", _S.DHCP),
    _multi("no-dhcpv4-interface", _S.DHCP),
    _multi("no-dhcpv6-interface", _S.DHCP),
    _last("dhcp-leasefile", _S.DHCP, _K.PATH, aliases=("dhcp-lease",)),
    _last("dhcp-lease-max", _S.DHCP, _K.INT),
    _last("dhcp-ttl", _S.DHCP, _K.INT),
    _last("dhcp-script", _S.DHCP, _K.PATH),
    # TFTP / PXE
    *_flags(_S.TFTP_PXE, "enable-tftp", "tftp-secure", "tftp-no-fail", "tftp-no-blocksize"),
    _last("tftp-root", _S.TFTP_PXE, _K.PATH),
    _last("pxe-prompt", _S.TFTP_PXE),
    _multi("pxe-service", _S.TFTP_PXE),
    # DNSSEC
    *_flags(_S.DNSSEC, "dnssec", "dnssec-check-unsigned", "proxy-dnssec"),
    _multi("trust-anchor", _S.DNSSEC),
    # Cache
    *_flags(_S.CACHE, "no-negcache"),
    _last("cache-size", _S.CACHE, _K.INT),
    _last("local-ttl", _S.CACHE, _K.INT),
    _last("neg-ttl", _S.CACHE, _K.INT),
    _last("max-ttl", _S.CACHE, _K.INT),
    _last("max-cache-ttl", _S.CACHE, _K.INT),
    _last("min-cache-ttl", _S.CACHE, _K.INT),
    _multi("cache-rr", _S.CACHE),
    # Process, networking, logging, includes
    *_flags(
        _S.PROCESS,
        "bind-interfaces",
        "bind-dynamic",
        "log-debug",
        "keep-in-foreground",
        "no-daemon",
        "conntrack",
    ),
    _last("port", _S.PROCESS, _K.INT),
    _last("user", _S.PROCESS),
    _last("group", _S.PROCESS),
    _last("pid-file", _S.PROCESS, _K.PATH),
    _last("log-facility", _S.PROCESS),
    _last("log-queries", _S.PROCESS),
    _last("log-async", _S.PROCESS),
    _last("local-service", _S.PROCESS),
    _last("enable-dbus", _S.PROCESS),
    _last("enable-ubus", _S.PROCESS),
    _multi("interface", _S.PROCESS),
    _multi("listen-address", _S.PROCESS),
    _multi("except-interface", _S.PROCESS),
    _multi("conf-file", _S.PROCESS, _K.RAW),
    _multi("conf-dir", _S.PROCESS, _K.RAW),
)

# Lookup by every key, aliases included
_BY_KEY: dict[str, OptionSpec] = {key: spec for spec in OPTIONS for key in spec.keys}


def get_spec(name: str) -> OptionSpec | None:
    """Look up a registered option by name or alias.

    Args:
        name: Option name, matched case-sensitively.

    Returns:
        The option's spec, or None if the option is not registered.
    """
    return _BY_KEY.get(name)


def get_behavior(name: str) -> OptionBehavior:
    """Get the merge behavior of an option.

    Args:
        name: Option name, matched case-sensitively.

    Returns:
        The registered behavior; LAST_WINS for unknown options.
    """
    spec = _BY_KEY.get(name)
    return spec.behavior if spec is not None else OptionBehavior.LAST_WINS


def get_kind(name: str) -> OptionKind:
    """Get the parsing kind of an option (STRING for unknown options)."""
    spec = _BY_KEY.get(name)
    return spec.kind if spec is not None else OptionKind.STRING


def canonical_name(name: str) -> str:
    """Map an alias to its canonical option name (unknown names pass through)."""
    spec = _BY_KEY.get(name)
    return spec.name if spec is not None else name


def keys_for(name: str) -> tuple[str, ...]:
    """Get every config key that feeds an option's value.

    Args:
        name: Option name or alias.

    Returns:
        The option's keys, canonical name first; ``(name,)`` for unknown options.
    """
    spec = _BY_KEY.get(name)
    return spec.keys if spec is not None else (name,)


def options_in(section: OptionSection) -> list[OptionSpec]:
    """Get the registered options of a section, in catalog order."""
    return [spec for spec in OPTIONS if spec.section == section]
