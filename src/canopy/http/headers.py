"""Request headers, looked up by lower-cased name."""

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """The headers a site reads (``cookie``, ``accept-language``,
    ``content-type``) never repeat meaningfully, so a repeated header
    keeps its first value.
    """

    __slots__ = ("_values",)

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        values: dict[str, str] = {}
        for name, value in raw:
            values.setdefault(name.decode("latin-1").lower(), value.decode("latin-1"))
        self._values = values

    def __getitem__(self, key: str) -> str:
        return self._values[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Headers({self._values!r})"
