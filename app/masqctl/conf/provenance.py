"""Provenance of resolved config values.

Every effective value can answer which file and line set it and whether
masqctl may change it. Values from the managed file are editable; values
from any other file are read-only and can only be changed by editing that
file (or overridden, for last-wins options, from the managed file which
dnsmasq loads last).
"""

from dataclasses import dataclass
from pathlib import Path

from masqctl.conf.options import OptionBehavior, get_behavior, keys_for


@dataclass(frozen=True, slots=True)
class ValueProvenance:
    """Where an effective config value came from.

    Attributes:
        file_path: Absolute path of the config file that set the value.
        file_name: File name only, for compact display.
        is_managed: True when the file is the managed config file.
        line_number: 1-based line number of the directive, None if unknown.
    """

    file_path: str
    file_name: str
    is_managed: bool
    line_number: int | None = None

    @classmethod
    def for_file(cls, path: Path, managed_file_path: Path | None, line_number: int | None) -> "ValueProvenance":
        """Build a provenance record for a line of a config file.

        Args:
            path: File that contains the directive.
            managed_file_path: Managed file of the config set, if any.
            line_number: 1-based line number of the directive.

        Returns:
            Provenance with ``is_managed`` derived from the managed path.
        """
        return cls(
            file_path=str(path),
            file_name=path.name,
            is_managed=managed_file_path is not None and path == managed_file_path,
            line_number=line_number,
        )

    @property
    def is_read_only(self) -> bool:
        """True when the value is set outside the managed file."""
        return not self.is_managed

    def read_only_tooltip(self) -> str | None:
        """Describe where a read-only value is set and how to change it.

        Returns:
            A short explanation, or None when the value is editable.
        """
        if not self.is_read_only:
            return None
        if self.line_number is not None:
            return (
                f"From {self.file_name} line {self.line_number} (readonly). "
                f"Edit {self.file_path} to change."
            )
        return f"From {self.file_name} (readonly). Edit {self.file_path} to change."


@dataclass(frozen=True, slots=True)
class EditHint:
    """How to change an option that is set in a read-only file.

    Attributes:
        option: Option name.
        file_path: File that currently sets the option.
        remove_command: Shell command that deletes the option from that file.
        override_line: Line to put in the managed file instead, None for
            options that cannot be overridden from a later file.
    """

    option: str
    file_path: str
    remove_command: str
    override_line: str | None


def readonly_hint(option: str, provenance: ValueProvenance, value: str | None = None) -> EditHint:
    """Build the edit hint for a value set in a read-only file.

    Flags and multi-value options accumulate across files, so they can only
    be changed by removing the line at its source. Last-wins options can
    also be overridden from the managed file because dnsmasq loads it last.

    Args:
        option: Option name.
        provenance: Where the current value is set.
        value: Value to suggest for the override line.

    Returns:
        EditHint with the removal command and, for last-wins options, an
        override line.
    """
    behavior = get_behavior(option)
    keys = keys_for(option)
    # Aliases need an alternation, which needs extended regex syntax
    key_pattern = keys[0] if len(keys) == 1 else f"({'|'.join(keys)})"
    extended = "" if len(keys) == 1 else " -E"
    if behavior == OptionBehavior.FLAG:
        pattern = f"^{key_pattern}$"
    else:
        pattern = f"^{key_pattern}=.*$"
    remove_command = f"sed -i{extended} '/{pattern}/d' {provenance.file_path}"

    override_line: str | None = None
    if behavior == OptionBehavior.LAST_WINS:
        override_line = f"{option}={value}" if value else option

    return EditHint(
        option=option,
        file_path=provenance.file_path,
        remove_command=remove_command,
        override_line=override_line,
    )
