"""Scan result entities: rules, match records and result collections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Sequence, overload

from .value_objects import (
    DEFAULT_NAMESPACE,
    MetadataPayload,
    MetadataType,
    PatternMatch,
    TaggedValue,
)


class MetadataAccessors:
    """Typed read access to a ``metadata`` mapping of TaggedValue."""

    metadata: dict[str, TaggedValue]
    namespace: str
    identifier: str
    tags: tuple[str, ...]

    @property
    def qualified_name(self) -> str:
        """Rule name prefixed with its namespace, e.g. ``default.MyRule``."""
        if not self.namespace:
            return self.identifier
        return f"{self.namespace}.{self.identifier}"

    @property
    def rule_meta(self) -> dict[str, MetadataPayload]:
        """Metadata as plain Python values."""
        return {key: tagged.value for key, tagged in self.metadata.items()}

    def has_tag(self, tag: str) -> bool:
        return str(tag) in self.tags

    def metadata_value(self, key: str) -> Optional[MetadataPayload]:
        tagged = self.metadata.get(str(key))
        return tagged.value if tagged is not None else None

    def _typed(self, key: str, kind: MetadataType) -> Optional[Any]:
        tagged = self.metadata.get(str(key))
        if tagged is None or tagged.type is not kind:
            return None
        return tagged.value

    def metadata_string(self, key: str) -> Optional[str]:
        return self._typed(key, MetadataType.TEXT)

    def metadata_int(self, key: str) -> Optional[int]:
        return self._typed(key, MetadataType.INTEGER)

    def metadata_float(self, key: str) -> Optional[float]:
        return self._typed(key, MetadataType.FLOAT)

    def metadata_bool(self, key: str) -> Optional[bool]:
        return self._typed(key, MetadataType.BOOLEAN)

    def metadata_bytes(self, key: str) -> Optional[bytes]:
        return self._typed(key, MetadataType.BYTES)


@dataclass
class Rule(MetadataAccessors):
    """A rule of a compiled rule set, inspected without scanning."""

    identifier: str
    namespace: str = DEFAULT_NAMESPACE
    metadata: dict[str, TaggedValue] = field(default_factory=dict)
    tags: tuple[str, ...] = ()


@dataclass
class MatchRecord(MetadataAccessors):
    """
    Outcome of one matching rule for one scan.

    Pattern matches are kept per pattern identifier in the order the engine
    reported them. Views such as ``all_matches`` never reorder the mapping.
    """

    identifier: str
    namespace: str = DEFAULT_NAMESPACE
    tags: tuple[str, ...] = ()
    metadata: dict[str, TaggedValue] = field(default_factory=dict)
    pattern_matches: dict[str, list[PatternMatch]] = field(default_factory=dict)

    @property
    def rule_name(self) -> str:
        return self.identifier

    def add_pattern_match(self, pattern: str, match: PatternMatch) -> None:
        self.pattern_matches.setdefault(pattern, []).append(match)

    def matches_for_pattern(self, pattern: str) -> list[PatternMatch]:
        """Matches of one pattern (``"$a"``), empty when it never matched."""
        return list(self.pattern_matches.get(str(pattern), []))

    def pattern_matched(self, pattern: str) -> bool:
        return bool(self.pattern_matches.get(str(pattern)))

    @property
    def matched_patterns(self) -> list[str]:
        """Identifiers of the patterns with at least one match."""
        return [name for name, matches in self.pattern_matches.items() if matches]

    @property
    def all_matches(self) -> list[PatternMatch]:
        """Every match of every pattern, sorted by offset."""
        everything = [m for matches in self.pattern_matches.values() for m in matches]
        return sorted(everything, key=lambda m: (m.offset, m.length))

    @property
    def total_matches(self) -> int:
        return sum(len(matches) for matches in self.pattern_matches.values())


class ScanResults(Sequence[MatchRecord]):
    """Ordered collection of the rules that matched during one scan."""

    def __init__(self, records: Optional[Sequence[MatchRecord]] = None):
        self._records: list[MatchRecord] = list(records or [])

    def append(self, record: MatchRecord) -> None:
        self._records.append(record)

    @overload
    def __getitem__(self, index: int) -> MatchRecord: ...

    @overload
    def __getitem__(self, index: slice) -> list[MatchRecord]: ...

    def __getitem__(self, index):
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[MatchRecord]:
        return iter(self._records)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ScanResults):
            return self._records == other._records
        if isinstance(other, list):
            return self._records == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ScanResults({self.matching_rules!r})"

    @property
    def matched(self) -> bool:
        return bool(self._records)

    @property
    def matching_rules(self) -> list[str]:
        return [record.identifier for record in self._records]

    def first(self) -> Optional[MatchRecord]:
        return self._records[0] if self._records else None

    def last(self) -> Optional[MatchRecord]:
        return self._records[-1] if self._records else None

    def get(self, identifier: str, namespace: Optional[str] = None) -> Optional[MatchRecord]:
        """Find the record of a rule by identifier (and namespace, if given)."""
        for record in self._records:
            if record.identifier != identifier:
                continue
            if namespace is None or record.namespace == namespace:
                return record
        return None

    def to_list(self) -> list[MatchRecord]:
        return list(self._records)
