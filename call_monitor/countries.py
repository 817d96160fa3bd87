from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

UNKNOWN_COUNTRY = "Unknown"
DEFAULT_FLAG = "🏳"

_MAX_PREFIX_LEN = 4
_MIN_MASKABLE_DIGITS = 6
_REGIONAL_INDICATOR_A = 0x1F1E6


def _load_table(path: Path) -> dict[str, str]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def iso_to_flag(iso: str) -> str:
    code = (iso or "").strip().upper()
    if len(code) != 2 or not code.isalpha() or not code.isascii():
        return DEFAULT_FLAG
    return "".join(chr(_REGIONAL_INDICATOR_A + ord(c) - ord("A")) for c in code)


@dataclass(frozen=True)
class CountryDirectory:
    """Read-only lookup from dialling prefixes to countries.

    ``prefixes`` maps numeric prefixes ("855") to ISO codes ("KH") and
    ``names`` maps ISO codes to display names ("Cambodia").
    """

    prefixes: dict[str, str] = field(default_factory=dict)
    names: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_files(cls, prefix_path: str | Path, names_path: str | Path) -> CountryDirectory:
        return cls(prefixes=_load_table(Path(prefix_path)), names=_load_table(Path(names_path)))

    def extract_prefix(self, number: str) -> str | None:
        """Longest known prefix of ``number``, trying four digits down to one."""
        s = str(number)
        for length in range(_MAX_PREFIX_LEN, 0, -1):
            candidate = s[:length]
            if len(candidate) == length and candidate in self.prefixes:
                return candidate
        return None

    def iso_code(self, number: str) -> str | None:
        prefix = self.extract_prefix(number)
        if prefix is None:
            return None
        return self.prefixes.get(prefix)

    def country_name(self, number: str) -> str:
        iso = self.iso_code(number)
        if not iso:
            return UNKNOWN_COUNTRY
        return self.names.get(iso, UNKNOWN_COUNTRY)

    def flag(self, number: str) -> str:
        iso = self.iso_code(number)
        if not iso:
            return DEFAULT_FLAG
        return iso_to_flag(iso)

    def mask(self, number: str, token: str = "DRX") -> str:
        """Hide the middle of the subscriber part of ``number``.

        Keeps the country prefix, the first three and the last three
        subscriber digits. Numbers with fewer than six subscriber digits are
        returned unchanged.
        """
        s = str(number)
        prefix = self.extract_prefix(s) or s[:3]
        rest = s[len(prefix):]
        if len(rest) < _MIN_MASKABLE_DIGITS:
            return s
        return f"{prefix}{rest[:3]}{token}{rest[-3:]}"
