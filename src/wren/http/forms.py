"""Request body parsing: URL-encoded and multipart form data.

URL-encoded bodies use stdlib ``urllib.parse``. Multipart bodies use the
streaming parser from ``python-multipart``; uploaded files are held in
memory as ``UploadFile`` objects.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

from python_multipart.multipart import MultipartParser, parse_options_header


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission."""

    filename: str
    content_type: str
    size: int
    _content: bytes = field(repr=False)

    async def read(self) -> bytes:
        """Return the file content as bytes."""
        return self._content

    async def save(self, path: Path) -> None:
        """Write the file content to *path*. Parent directories must exist."""
        path.write_bytes(self._content)


class FormData(Mapping[str, str]):
    """Parsed form fields plus uploaded files.

    ``form["name"]`` returns the first value; ``get_list`` returns all.
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]],
        files: dict[str, UploadFile] | None = None,
    ) -> None:
        self._data = data
        self._files = files or {}

    @property
    def files(self) -> Mapping[str, UploadFile]:
        """Uploaded files by field name."""
        return self._files

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._data.get(key, []))

    def normalized(self) -> dict[str, str | list[str]]:
        """Return fields with single values unwrapped and repeats kept as lists."""
        return {
            key: values[0] if len(values) == 1 else list(values)
            for key, values in self._data.items()
        }


async def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse a form body according to its Content-Type.

    Raises ``ValueError`` for content types that are not form encodings
    or multipart bodies without a boundary.
    """
    media_type = content_type.lower().split(";")[0].strip()

    if media_type == "application/x-www-form-urlencoded":
        return FormData(parse_qs(body.decode("utf-8"), keep_blank_values=True))

    if media_type == "multipart/form-data":
        return _parse_multipart(body, content_type)

    msg = f"Unsupported form content type: {content_type!r}"
    raise ValueError(msg)


class _PartCollector:
    """Accumulates multipart parser callbacks into fields and files."""

    def __init__(self) -> None:
        self.fields: dict[str, list[str]] = {}
        self.files: dict[str, UploadFile] = {}
        self._headers: dict[str, str] = {}
        self._header_name = ""
        self._buffer = bytearray()
        self._name: str | None = None
        self._filename: str | None = None

    def callbacks(self) -> dict[str, Any]:
        return {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
        }

    def on_part_begin(self) -> None:
        self._headers = {}
        self._buffer = bytearray()
        self._name = None
        self._filename = None

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._buffer.extend(data[start:end])

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name = data[start:end].decode("latin-1").lower()

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        value = data[start:end].decode("latin-1")
        self._headers[self._header_name] = value
        if self._header_name != "content-disposition":
            return
        _, params = parse_options_header(value.encode("latin-1"))
        if b"name" in params:
            self._name = params[b"name"].decode("utf-8")
        if b"filename" in params:
            self._filename = params[b"filename"].decode("utf-8")

    def on_part_end(self) -> None:
        if self._name is None:
            return
        content = bytes(self._buffer)
        if self._filename is None:
            self.fields.setdefault(self._name, []).append(
                content.decode("utf-8", errors="replace")
            )
            return
        self.files[self._name] = UploadFile(
            filename=self._filename,
            content_type=self._headers.get("content-type", "application/octet-stream"),
            size=len(content),
            _content=content,
        )


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        msg = "Multipart form data missing boundary parameter"
        raise ValueError(msg)

    collector = _PartCollector()
    parser = MultipartParser(boundary, collector.callbacks())
    parser.write(body)
    parser.finalize()
    return FormData(collector.fields, collector.files)
