"""Case-insensitive multi-valued header map."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Union

HeaderValues = Union[str, Iterable[str]]


class HeaderMap:
    """Ordered mapping of lower-cased header names to their values.

    The first spelling seen for a name is kept so headers can be written back
    to the wire the way they were defined.
    """

    def __init__(self, headers: Mapping[str, HeaderValues] | Iterable[tuple[str, str]] | None = None) -> None:
        self._names: dict[str, str] = {}
        self._values: dict[str, list[str]] = {}
        if headers is None:
            return
        if isinstance(headers, Mapping):
            for name, values in headers.items():
                self.extend(name, values)
        else:
            for name, value in headers:
                self.add(name, value)

    def add(self, name: str, value: str) -> None:
        if not name:
            raise ValueError("header name cannot be empty")
        if value is None:
            raise ValueError("header value cannot be None, use an empty string instead")
        key = name.lower()
        self._names.setdefault(key, name)
        self._values.setdefault(key, []).append(str(value))

    def extend(self, name: str, values: HeaderValues) -> None:
        if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
            self.add(name, values)  # type: ignore[arg-type]
            return
        for value in values:
            self.add(name, value)

    def get_all(self, name: str) -> list[str] | None:
        values = self._values.get(name.lower())
        return list(values) if values is not None else None

    def get_first(self, name: str) -> str | None:
        values = self._values.get(name.lower())
        return values[0] if values else None

    def pairs(self) -> Iterator[tuple[str, str]]:
        for key, values in self._values.items():
            for value in values:
                yield self._names[key], value

    def as_dict(self) -> dict[str, tuple[str, ...]]:
        return {key: tuple(values) for key, values in self._values.items()}

    def copy(self) -> "HeaderMap":
        return HeaderMap(list(self.pairs()))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderMap):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        return f"HeaderMap({list(self.pairs())!r})"
