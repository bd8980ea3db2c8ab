"""dhcp-host directive grammar.

A ``dhcp-host=`` line has the form::

    [#|##]dhcp-host=field[,field...][ # comment]

dnsmasq accepts the fields in almost any order, so they are classified by
content, not position. The first matching rule wins:

1. six colon-separated hex pairs: MAC address (several are allowed)
2. four dot-separated octets 0-255: IPv4 address
3. ``infinite``, or a leading digit: lease time
4. ``ignore``: ignore flag
5. ``id:`` / ``set:`` prefix: kept as an opaque extra
6. letter (any script) followed by letters, digits, ``_`` or ``-``: host name
7. anything else: kept as an opaque extra

A single ``#`` prefix marks a commented-out reservation; ``##`` marks one
that was deleted. Deleted lines stay in the managed file: the writer keeps
them as they are, and a matched entry marked deleted is rewritten in place
as ``##dhcp-host=``.

Serialization normalizes field order and spacing. Re-parsing the output
classifies to the same fields, but the text is not byte-identical to
hand-written input.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, replace

DHCP_HOST_KEY = "dhcp-host"

_PREFIX = f"{DHCP_HOST_KEY}="
_COMMENT_PREFIX = f"#{_PREFIX}"
_DELETED_PREFIX = f"##{_PREFIX}"

_MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2}){5}$")
_IPV4_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)\.(\d+)$", re.ASCII)
_HOSTNAME_RE = re.compile(r"^[^\W\d_][\w-]*$")
_EXTRA_PREFIXES: tuple[str, ...] = ("id:", "set:")


@dataclass(frozen=True, slots=True)
class DhcpHostEntry:
    """A static DHCP reservation from a ``dhcp-host=`` line.

    Entries are immutable; edits produce a new entry with
    ``dataclasses.replace``.

    Attributes:
        mac_addresses: MAC addresses sharing this reservation, in file order.
        address: IPv4 address, None if not given.
        name: Host name, None if not given.
        lease: Lease time (``infinite``, ``12h``, ``3600`` ...), None if not given.
        ignore: True when the line carries the ``ignore`` keyword.
        extra: Unclassified fields (``id:``, ``set:``, ``tag:``, IPv6 ...), in order.
        is_comment: True when the line is commented out.
        is_deleted: True when the line is marked deleted (``##``).
        comment: Trailing comment text, None if there is none.
        line_number: 1-based line number in its file; 0 for new entries.
        id: Stable id within one read, assigned by assign_ids.
        source_path: File the entry was read from, None for new entries.
        is_editable: True when the entry lives in (or is destined for) the managed file.
    """

    mac_addresses: tuple[str, ...] = ()
    address: str | None = None
    name: str | None = None
    lease: str | None = None
    ignore: bool = False
    extra: tuple[str, ...] = ()
    is_comment: bool = False
    is_deleted: bool = False
    comment: str | None = None
    line_number: int = 0
    id: str | None = None
    source_path: str | None = None
    is_editable: bool = True

    @property
    def has_fields(self) -> bool:
        """True when the entry has at least one field to serialize."""
        return bool(
            self.mac_addresses
            or self.name
            or self.address
            or self.extra
            or self.lease
            or self.ignore
        )

    @property
    def stable_key(self) -> str:
        """Content key used for stable ids.

        Returns:
            ``sorted MACs|address|name``, or ``line:N`` when all three are empty.
        """
        macs = ",".join(sorted(self.mac_addresses))
        address = self.address or ""
        name = self.name or ""
        if macs or address or name:
            return f"{macs}|{address}|{name}"
        return f"line:{self.line_number}"


def is_dhcp_host_candidate(line: str) -> bool:
    """Check whether a line is a (possibly commented) dhcp-host directive."""
    text = line.strip()
    return text.startswith((_PREFIX, _COMMENT_PREFIX, _DELETED_PREFIX))


def is_mac(field: str) -> bool:
    """Check for a MAC address of six colon-separated hex pairs."""
    return _MAC_RE.match(field) is not None


def is_ipv4(field: str) -> bool:
    """Check for a dotted-quad IPv4 address with octets 0-255."""
    match = _IPV4_RE.match(field)
    if match is None:
        return False
    return all(int(octet) <= 255 for octet in match.groups())


def is_hostname(field: str) -> bool:
    """Check for a host name: a letter, then letters, digits, ``_`` or ``-``."""
    return _HOSTNAME_RE.match(field) is not None


def _is_extra(field: str) -> bool:
    return field.lower().startswith(_EXTRA_PREFIXES)


def _split_body(body: str) -> tuple[list[str], str | None]:
    """Split the text after ``dhcp-host=`` into fields and trailing comment."""
    comment: str | None = None
    hash_index = body.find("#")
    if hash_index >= 0:
        comment = body[hash_index + 1 :].strip() or None
        body = body[:hash_index]
    fields = [field.strip() for field in body.split(",")]
    return [field for field in fields if field], comment


def parse_dhcp_host_line(line: str, line_number: int) -> DhcpHostEntry | None:
    """Parse a dhcp-host line.

    Args:
        line: Raw config line.
        line_number: 1-based line number of the line in its file.

    Returns:
        The parsed entry, or None when the line is not a dhcp-host
        directive or has no fields.
    """
    text = line.strip()
    if text.startswith(_DELETED_PREFIX):
        is_comment, is_deleted = True, True
        body = text[len(_DELETED_PREFIX) :]
    elif text.startswith(_COMMENT_PREFIX):
        is_comment, is_deleted = True, False
        body = text[len(_COMMENT_PREFIX) :]
    elif text.startswith(_PREFIX):
        is_comment, is_deleted = False, False
        body = text[len(_PREFIX) :]
    else:
        return None

    fields, comment = _split_body(body)
    if not fields:
        return None

    macs: list[str] = []
    extra: list[str] = []
    address: str | None = None
    name: str | None = None
    lease: str | None = None
    ignore = False

    for field in fields:
        if is_mac(field):
            macs.append(field)
        elif is_ipv4(field):
            address = field
        elif field.lower() == "infinite" or field[0] in "0123456789":
            lease = field
        elif field.lower() == "ignore":
            ignore = True
        elif _is_extra(field):
            extra.append(field)
        elif is_hostname(field):
            name = field
        else:
            extra.append(field)

    return DhcpHostEntry(
        mac_addresses=tuple(macs),
        address=address,
        name=name,
        lease=lease,
        ignore=ignore,
        extra=tuple(extra),
        is_comment=is_comment,
        is_deleted=is_deleted,
        comment=comment,
        line_number=line_number,
    )


def dhcp_host_to_line(entry: DhcpHostEntry) -> str:
    """Serialize an entry as a dhcp-host line.

    Fields are written as ``id:`` extras, MACs, name, address, other
    extras, lease, ``ignore``. An entry without fields is written commented
    out so the file never holds a bare ``dhcp-host=`` directive.

    Args:
        entry: Entry to serialize.

    Returns:
        The config line, without a line terminator.
    """
    if entry.is_deleted:
        prefix = "##"
    elif entry.is_comment or not entry.has_fields:
        prefix = "#"
    else:
        prefix = ""

    id_extras = [e for e in entry.extra if e.lower().startswith("id:")]
    other_extras = [e for e in entry.extra if not e.lower().startswith("id:")]

    parts: list[str] = list(id_extras)
    if entry.mac_addresses:
        parts.append(",".join(entry.mac_addresses))
    if entry.name:
        parts.append(entry.name)
    if entry.address:
        parts.append(entry.address)
    if other_extras:
        parts.append(", ".join(other_extras))
    if entry.lease:
        parts.append(entry.lease)
    if entry.ignore:
        parts.append("ignore")

    line = f"{prefix}{_PREFIX}{', '.join(parts)}"
    if entry.comment:
        line += f" # {entry.comment}"
    return line


def assign_ids(
    entries: Iterable[DhcpHostEntry],
    reserved: Iterable[str] = (),
) -> list[DhcpHostEntry]:
    """Assign stable ids to entries read together.

    The id is the entry's content key. When two entries share a key, the
    second and later ones get ``:line_number`` appended, so ids are unique
    within one read and identical across reads of an unchanged file.

    Args:
        entries: Entries in read order.
        reserved: Ids already taken by entries assigned earlier in the same read.

    Returns:
        New entries carrying their ids, in the same order.
    """
    seen: set[str] = set(reserved)
    result: list[DhcpHostEntry] = []
    for entry in entries:
        base_id = entry.stable_key
        if base_id in seen:
            entry_id = f"{base_id}:{entry.line_number}"
        else:
            seen.add(base_id)
            entry_id = base_id
        result.append(replace(entry, id=entry_id))
    return result
