"""Line model of the managed config file.

The managed file is the only file masqctl rewrites, so it is the only one
parsed into structured lines. Every physical line becomes one of:

- BlankLine: empty or whitespace-only
- CommentLine: starts with ``#`` (other than a commented dhcp-host)
- AddnHostsLine: an ``addn-hosts=`` directive
- DhcpHostLine: a ``dhcp-host=`` directive, including ``#``/``##`` forms
- OtherLine: any other line, kept verbatim

Rendering writes every line back unchanged except dhcp-host lines, whose
fields are normalized. An addn-hosts line is regenerated from its path only
when it was created or repointed and carries no raw text.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from masqctl.conf.dhcp_host import (
    DhcpHostEntry,
    dhcp_host_to_line,
    is_dhcp_host_candidate,
    parse_dhcp_host_line,
)
from masqctl.conf.directive import strip_comment

ADDN_HOSTS_KEY = "addn-hosts"
_ADDN_HOSTS_PREFIX = f"{ADDN_HOSTS_KEY}="


class LineKind(str, Enum):
    """Kind of a managed-file line.

    Attributes:
        BLANK: Empty or whitespace-only line.
        COMMENT: Comment line.
        ADDN_HOSTS: ``addn-hosts=`` directive.
        DHCP_HOST: ``dhcp-host=`` directive (possibly commented).
        OTHER: Any other directive or text.
    """

    BLANK = "blank"
    COMMENT = "comment"
    ADDN_HOSTS = "addn-hosts"
    DHCP_HOST = "dhcp-host"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class BlankLine:
    """Empty or whitespace-only line."""

    kind: ClassVar[LineKind] = LineKind.BLANK

    line_number: int
    raw: str = ""

    def to_line(self) -> str:
        return self.raw


@dataclass(frozen=True, slots=True)
class CommentLine:
    """Comment line, kept verbatim."""

    kind: ClassVar[LineKind] = LineKind.COMMENT

    line_number: int
    raw: str

    def to_line(self) -> str:
        return self.raw


@dataclass(frozen=True, slots=True)
class AddnHostsLine:
    """``addn-hosts=`` directive pointing at a hosts file.

    Attributes:
        line_number: 1-based line number.
        path: Hosts file path, without any trailing comment.
        raw: Line as read; empty for a generated line.
    """

    kind: ClassVar[LineKind] = LineKind.ADDN_HOSTS

    line_number: int
    path: str
    raw: str = ""

    def to_line(self) -> str:
        return self.raw or f"{_ADDN_HOSTS_PREFIX}{self.path}"


@dataclass(frozen=True, slots=True)
class DhcpHostLine:
    """``dhcp-host=`` directive with its parsed entry."""

    kind: ClassVar[LineKind] = LineKind.DHCP_HOST

    line_number: int
    entry: DhcpHostEntry

    def to_line(self) -> str:
        return dhcp_host_to_line(self.entry)


@dataclass(frozen=True, slots=True)
class OtherLine:
    """Any other line, kept verbatim."""

    kind: ClassVar[LineKind] = LineKind.OTHER

    line_number: int
    raw: str

    def to_line(self) -> str:
        return self.raw


ManagedLine = BlankLine | CommentLine | AddnHostsLine | DhcpHostLine | OtherLine


@dataclass(frozen=True, slots=True)
class ManagedConfigContent:
    """Parsed content of the managed config file.

    Attributes:
        lines: Structured lines in file order.
        addn_hosts_path: Path of the first ``addn-hosts=`` line, empty if none.
    """

    lines: tuple[ManagedLine, ...] = ()
    addn_hosts_path: str = ""

    @property
    def dhcp_hosts(self) -> list[DhcpHostEntry]:
        """Entries of the dhcp-host lines, in file order."""
        return [line.entry for line in self.lines if isinstance(line, DhcpHostLine)]


def parse_managed_line(raw: str, line_number: int) -> ManagedLine:
    """Classify one line of the managed file.

    Args:
        raw: Line as read (without terminator).
        line_number: 1-based line number.

    Returns:
        The structured line.
    """
    text = raw.strip()
    if not text:
        return BlankLine(line_number=line_number, raw=raw)
    if is_dhcp_host_candidate(text):
        entry = parse_dhcp_host_line(raw, line_number)
        if entry is not None:
            return DhcpHostLine(line_number=line_number, entry=entry)
    if text.startswith("#"):
        return CommentLine(line_number=line_number, raw=raw)
    if text.startswith(_ADDN_HOSTS_PREFIX):
        path = strip_comment(text[len(_ADDN_HOSTS_PREFIX) :]).strip()
        return AddnHostsLine(line_number=line_number, path=path, raw=raw)
    return OtherLine(line_number=line_number, raw=raw)


def parse_managed_lines(raw_lines: list[str]) -> list[ManagedLine]:
    """Parse the managed file into structured lines.

    Args:
        raw_lines: File content as lines.

    Returns:
        One structured line per input line.
    """
    return [parse_managed_line(raw, number) for number, raw in enumerate(raw_lines, start=1)]


def render_managed_lines(lines: list[ManagedLine]) -> list[str]:
    """Turn structured lines back into file lines."""
    return [line.to_line() for line in lines]


def first_addn_hosts_path(lines: list[ManagedLine] | tuple[ManagedLine, ...]) -> str:
    """Get the path of the first ``addn-hosts=`` line, or ``""``."""
    for line in lines:
        if isinstance(line, AddnHostsLine):
            return line.path
    return ""


def build_managed_content(raw_lines: list[str]) -> ManagedConfigContent:
    """Parse the managed file into its content record."""
    lines = parse_managed_lines(raw_lines)
    return ManagedConfigContent(lines=tuple(lines), addn_hosts_path=first_addn_hosts_path(lines))

