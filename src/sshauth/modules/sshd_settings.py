"""
SSH Daemon Settings Module

Apply individual settings to an sshd_config style file without deleting
anything.

Rules:
- Every active line naming the setting is commented out with a single '#'
- Lines that are already commented are left untouched
- The new 'Name value' line goes at the end of the file, or just before the
  first Match block so it stays global
- Re-applying a setting that is already in effect changes nothing

sshd uses the first value it obtains for a keyword, so after an apply the new
line is the only active one in the global section and therefore the
effective value.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

COMMENT_MARKER = "#"

_SETTING_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")
_MATCH_BLOCK_RE = re.compile(r"^\s*match(\s|$)", re.IGNORECASE)


class SettingsError(Exception):
    """Raised when a setting cannot be applied."""

    pass


class ConfigNotFoundError(SettingsError):
    """Raised when the daemon configuration file does not exist."""

    pass


class ConfigIOError(SettingsError):
    """Raised when the daemon configuration file cannot be read or written."""

    pass


class SettingValidationError(SettingsError):
    """Raised when a setting name or value is malformed."""

    pass


class LineState(Enum):
    """State of a line that names a setting."""

    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass
class SettingLine:
    """A line that references a setting, commented or not."""

    index: int
    state: LineState
    value: str


@dataclass
class ApplyResult:
    """Outcome of applying one setting."""

    name: str
    value: str
    changed: bool
    deactivated: int
    line_number: int

    @property
    def line(self) -> str:
        return f"{self.name} {self.value}"


def validate_setting(name: str, value: str) -> None:
    """
    Check that a setting can be written as a single config line.

    Raises:
        SettingValidationError: If name is not a bare identifier or value is
            empty or spans lines
    """
    if not name or not _SETTING_NAME_RE.match(name):
        raise SettingValidationError(
            f"Invalid setting name: {name!r}. Use a bare keyword such as PasswordAuthentication."
        )
    if not value or not value.strip():
        raise SettingValidationError(f"Value for {name} cannot be empty")
    if "\n" in value or "\r" in value:
        raise SettingValidationError(f"Value for {name} must be a single line")


def _setting_pattern(name: str) -> re.Pattern:
    # Optional whitespace/'#' prefix, the keyword, then whitespace, '=' or EOL
    return re.compile(rf"^(?P<prefix>[\s#]*){re.escape(name)}(?:[\s=]+(?P<value>.*?))?\s*$")


def find_setting_lines(lines: list[str], name: str) -> list[SettingLine]:
    """
    Classify every line that references a setting.

    Args:
        lines: File lines (with or without line endings)
        name: Setting keyword, matched case-sensitively

    Returns:
        list[SettingLine]: Matching lines in file order
    """
    pattern = _setting_pattern(name)
    found: list[SettingLine] = []

    for index, line in enumerate(lines):
        match = pattern.match(line.rstrip("\r\n"))
        if not match:
            continue
        state = LineState.INACTIVE if COMMENT_MARKER in match.group("prefix") else LineState.ACTIVE
        found.append(SettingLine(index=index, state=state, value=match.group("value") or ""))

    return found


def first_match_block(lines: list[str]) -> int | None:
    """Return the index of the first active Match line, or None."""
    for index, line in enumerate(lines):
        if _MATCH_BLOCK_RE.match(line):
            return index
    return None


def effective_value(lines: list[str], name: str) -> str | None:
    """
    Value sshd will use for a setting in the global section.

    sshd takes the first value obtained for each keyword, so this returns the
    value of the first active line before any Match block.
    """
    boundary = first_match_block(lines)
    for setting_line in find_setting_lines(lines, name):
        if boundary is not None and setting_line.index >= boundary:
            break
        if setting_line.state is LineState.ACTIVE:
            return setting_line.value
    return None


class ConfigSettingApplier:
    """
    Apply settings to an sshd_config style file.

    The file is read, transformed in memory and written back in place so its
    ownership and mode are preserved. No backup is made here.

    Example:
        >>> result = ConfigSettingApplier.apply(Path("/etc/ssh/sshd_config"),
        ...                                     "PasswordAuthentication", "no")
        >>> result.changed
        True
    """

    ENCODING = "utf-8"

    @classmethod
    def apply(cls, file_path: Path, name: str, value: str, force: bool = False) -> ApplyResult:
        """
        Ensure exactly one active 'name value' line is in effect.

        Args:
            file_path: Daemon configuration file
            name: Setting keyword (e.g. PasswordAuthentication)
            value: Desired value (e.g. no)
            force: Re-append the line even if it is already in effect

        Returns:
            ApplyResult: What was changed

        Raises:
            SettingValidationError: If name or value is malformed
            ConfigNotFoundError: If file_path does not exist
            ConfigIOError: If file_path cannot be read or written
        """
        validate_setting(name, value)
        file_path = Path(file_path)

        lines = cls.read_lines(file_path)
        new_lines, result = cls.apply_to_lines(lines, name, value, force=force)

        if result.changed:
            cls.write_lines(file_path, new_lines)
            logger.info(
                f"Set {name} {value} in {file_path} (line {result.line_number}, "
                f"{result.deactivated} previous line(s) commented out)"
            )
        else:
            logger.info(f"{name} {value} already in effect in {file_path}")

        return result

    @classmethod
    def apply_to_lines(
        cls, lines: list[str], name: str, value: str, force: bool = False
    ) -> tuple[list[str], ApplyResult]:
        """
        Pure form of apply(): transform a list of lines.

        Lines keep their own line endings; the returned list is a new list.
        """
        validate_setting(name, value)
        value = value.strip()

        boundary = first_match_block(lines)
        setting_lines = find_setting_lines(lines, name)
        active = [s for s in setting_lines if s.state is LineState.ACTIVE]

        if not force and cls._already_in_effect(setting_lines, active, value, boundary):
            line_number = active[0].index + 1
            return list(lines), ApplyResult(
                name=name, value=value, changed=False, deactivated=0, line_number=line_number
            )

        new_lines = list(lines)
        for setting_line in active:
            new_lines[setting_line.index] = COMMENT_MARKER + new_lines[setting_line.index]

        newline = cls._detect_newline(lines)
        new_line = f"{name} {value}{newline}"

        if boundary is None:
            if new_lines and not new_lines[-1].endswith(("\n", "\r")):
                new_lines[-1] += newline
            new_lines.append(new_line)
            insert_at = len(new_lines) - 1
        else:
            new_lines.insert(boundary, new_line)
            insert_at = boundary
            logger.debug(f"Inserted {name} before Match block at line {boundary + 1}")

        return new_lines, ApplyResult(
            name=name,
            value=value,
            changed=True,
            deactivated=len(active),
            line_number=insert_at + 1,
        )

    @classmethod
    def is_in_effect(cls, lines: list[str], name: str, value: str) -> bool:
        """True when apply() would leave these lines untouched."""
        boundary = first_match_block(lines)
        setting_lines = find_setting_lines(lines, name)
        active = [s for s in setting_lines if s.state is LineState.ACTIVE]
        return cls._already_in_effect(setting_lines, active, value.strip(), boundary)

    @staticmethod
    def _already_in_effect(
        setting_lines: list[SettingLine],
        active: list[SettingLine],
        value: str,
        boundary: int | None,
    ) -> bool:
        if len(active) != 1 or active[0].value != value:
            return False

        current = active[0]
        if boundary is not None and current.index >= boundary:
            return False

        # Must come after every other reference in the global section
        for setting_line in setting_lines:
            if boundary is not None and setting_line.index >= boundary:
                break
            if setting_line.index > current.index:
                return False
        return True

    @staticmethod
    def _detect_newline(lines: list[str]) -> str:
        for line in lines:
            if line.endswith("\r\n"):
                return "\r\n"
            if line.endswith("\n"):
                return "\n"
        return "\n"

    @classmethod
    def read_lines(cls, file_path: Path) -> list[str]:
        """
        Read a config file keeping line endings intact.

        Raises:
            ConfigNotFoundError: If the file does not exist
            ConfigIOError: If the file cannot be read
        """
        if not file_path.exists():
            logger.error(f"Config file not found: {file_path}")
            raise ConfigNotFoundError(f"Config file not found: {file_path}")

        try:
            with open(file_path, encoding=cls.ENCODING, errors="surrogateescape", newline="") as f:
                return f.readlines()
        except OSError as e:
            logger.error(f"Failed to read {file_path}: {e}")
            raise ConfigIOError(f"Failed to read {file_path}: {e}") from e

    @classmethod
    def write_lines(cls, file_path: Path, lines: list[str]) -> None:
        """
        Rewrite a config file in place.

        Raises:
            ConfigIOError: If the file cannot be written
        """
        try:
            with open(file_path, "w", encoding=cls.ENCODING, errors="surrogateescape", newline="") as f:
                f.writelines(lines)
        except OSError as e:
            logger.error(f"Failed to write {file_path}: {e}")
            raise ConfigIOError(f"Failed to write {file_path}: {e}") from e


def apply_setting(file_path: Path, name: str, value: str) -> ApplyResult:
    """
    Apply one setting (convenience function).

    Example:
        >>> from sshauth.modules.sshd_settings import apply_setting
        >>> apply_setting(Path("/etc/ssh/sshd_config"), "UsePAM", "yes")
    """
    return ConfigSettingApplier.apply(file_path, name, value)


def read_effective_settings(file_path: Path, names: list[str]) -> dict[str, str | None]:
    """Effective global value of each named setting (None if unset)."""
    lines = ConfigSettingApplier.read_lines(Path(file_path))
    return {name: effective_value(lines, name) for name in names}


__all__ = [
    "ApplyResult",
    "ConfigIOError",
    "ConfigNotFoundError",
    "ConfigSettingApplier",
    "LineState",
    "SettingLine",
    "SettingValidationError",
    "SettingsError",
    "apply_setting",
    "effective_value",
    "find_setting_lines",
    "first_match_block",
    "read_effective_settings",
    "validate_setting",
]
