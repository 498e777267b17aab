"""Url-encoded parameters: the query string and POSTed forms."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


class QueryParams(Mapping[str, str]):
    """``name -> value`` view over url-encoded data.

    A parameter sent several times reads as its first value. Blank
    values are kept, so ``?error=`` is present and empty.
    """

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes = b"") -> None:
        self._raw = query_string
        self._data: dict[str, list[str]] = parse_qs(
            query_string.decode("latin-1"), keep_blank_values=True
        )

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"QueryParams({dict(self)!r})"

    @property
    def raw(self) -> bytes:
        return self._raw

    def get_int(self, key: str, default: int = 0) -> int:
        """Value as a non-negative int, *default* when missing or invalid.

        Only ASCII digits count: ``"²"`` is a digit to ``str.isdigit`` but
        not something ``int()`` parses.
        """
        value = self.get(key, "")
        if not (value.isascii() and value.isdigit()):
            return default
        return int(value)
