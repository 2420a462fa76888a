"""
Style Map
=========

Ordered property map with ``!important``-aware overwrite semantics and
inline style attribute parsing/serialization.
"""

from typing import Dict, Iterator, List, Optional
from dataclasses import dataclass
import re

from htmlsnap.errors import StylePropertyRejected

UNRESOLVED_VALUES = frozenset({"", "initial", "inherit", "unset", "revert", "revert-layer"})

_PROPERTY_NAME = re.compile(r"^(--[\w-]+|-?[a-z][a-z0-9-]*)$")
_IMPORTANT = re.compile(r"\s*!\s*important\s*$", re.IGNORECASE)
_SUBSTITUTION = re.compile(r"\b(?:var|env)\(", re.IGNORECASE)


@dataclass(frozen=True)
class StyleDeclaration:
    """A single property declaration."""

    name: str
    value: str
    important: bool = False

    def to_css(self) -> str:
        suffix = " !important" if self.important else ""
        return f"{self.name}: {self.value}{suffix}"


def is_unresolved(value: Optional[str]) -> bool:
    """True for empty values and cascade keywords that carry no concrete value."""
    return value is None or value.strip().lower() in UNRESOLVED_VALUES


def has_substitution(value: Optional[str]) -> bool:
    """True when a value still references a custom property or environment variable."""
    return bool(value and _SUBSTITUTION.search(value))


def normalize_name(name: str) -> str:
    """Lowercase a property name; custom properties are case-sensitive and kept as is."""
    name = name.strip()
    return name if name.startswith("--") else name.lower()


def check_declaration(name: str, value: str) -> None:
    """
    Syntactic guard applied before a declaration enters a map.

    Raises:
        StylePropertyRejected: If the pair would corrupt an inline style attribute
    """
    if not _PROPERTY_NAME.match(name):
        raise StylePropertyRejected(name, value, "invalid property name")
    if not value or "\n" in value or "\r" in value:
        raise StylePropertyRejected(name, value, "empty or multi-line value")
    depth = 0
    quote: Optional[str] = None
    for ch in value:
        if quote:
            if ch == quote:
                quote = None
            continue
        if ch in "\"'":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                break
        elif ch in ";{}" and depth == 0:
            raise StylePropertyRejected(name, value, "value contains a declaration delimiter")
    if depth != 0 or quote:
        raise StylePropertyRejected(name, value, "unbalanced value")


class StyleMap:
    """Property name to resolved value, with priority-aware writes."""

    def __init__(self, declarations: Optional[Dict[str, str]] = None):
        self._entries: Dict[str, StyleDeclaration] = {}
        if declarations:
            for name, value in declarations.items():
                self.set(name, value)

    def set(self, name: str, value: str, important: bool = False) -> bool:
        """
        Write a declaration.

        A later write wins unless the existing entry is important and the new
        one is not.

        Returns:
            True if the map changed

        Raises:
            StylePropertyRejected: If the declaration is syntactically unusable
        """
        name = normalize_name(name)
        value = value.strip()
        check_declaration(name, value)

        existing = self._entries.get(name)
        if existing is not None and existing.important and not important:
            return False

        declaration = StyleDeclaration(name, value, important)
        if existing == declaration:
            return False
        self._entries[name] = declaration
        return True

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        entry = self._entries.get(normalize_name(name))
        return entry.value if entry else default

    def is_important(self, name: str) -> bool:
        entry = self._entries.get(normalize_name(name))
        return bool(entry and entry.important)

    def remove(self, name: str) -> None:
        self._entries.pop(normalize_name(name), None)

    def declarations(self) -> List[StyleDeclaration]:
        return list(self._entries.values())

    def to_dict(self) -> Dict[str, str]:
        return {name: entry.value for name, entry in self._entries.items()}

    def to_css(self) -> str:
        """Serialize as an inline style attribute value."""
        return "; ".join(entry.to_css() for entry in self._entries.values())

    def copy(self) -> "StyleMap":
        clone = StyleMap()
        clone._entries = dict(self._entries)
        return clone

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_name(name) in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StyleMap):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"StyleMap({self.to_css()!r})"


def parse_inline_style(text: Optional[str]) -> List[StyleDeclaration]:
    """Split an inline ``style`` attribute into declarations, keeping priorities."""
    if not text:
        return []

    declarations: List[StyleDeclaration] = []
    for chunk in _split_declarations(text):
        name, sep, value = chunk.partition(":")
        if not sep:
            continue
        name = normalize_name(name)
        value = value.strip()
        important = bool(_IMPORTANT.search(value))
        if important:
            value = _IMPORTANT.sub("", value)
        if name and value:
            declarations.append(StyleDeclaration(name, value, important))
    return declarations


def _split_declarations(text: str) -> List[str]:
    """Split on semicolons outside of parentheses and quotes."""
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    quote: Optional[str] = None
    for ch in text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in "\"'":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == ";" and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    if current:
        parts.append("".join(current))
    return [part for part in (p.strip() for p in parts) if part]
