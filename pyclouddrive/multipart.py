"""Streaming multipart/form-data bodies for content uploads."""

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Optional

from .utils import MULTIPART_BOUNDARY, UPLOAD_CHUNK_SIZE


class UploadSource:
    """Something whose bytes can be uploaded.

    ``iter_chunks`` must return a fresh iterator on every call so that a
    failed upload can be restarted from the beginning.
    """

    name: str

    @property
    def size(self) -> int:
        raise NotImplementedError

    def iter_chunks(self, chunk_size: int = UPLOAD_CHUNK_SIZE) -> Iterator[bytes]:
        raise NotImplementedError


class FileSource(UploadSource):
    """Upload source reading a local file from disk."""

    def __init__(self, path: Path, name: Optional[str] = None):
        self.path = Path(path)
        self.name = name or self.path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def iter_chunks(self, chunk_size: int = UPLOAD_CHUNK_SIZE) -> Iterator[bytes]:
        with open(self.path, "rb") as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                yield chunk


class BufferSource(UploadSource):
    """Upload source for content generated in memory."""

    def __init__(self, name: str, data: bytes):
        self.name = name
        self.data = data

    @property
    def size(self) -> int:
        return len(self.data)

    def iter_chunks(self, chunk_size: int = UPLOAD_CHUNK_SIZE) -> Iterator[bytes]:
        for offset in range(0, len(self.data), chunk_size):
            yield self.data[offset : offset + chunk_size]


class MultipartBody:
    """A multipart body with an optional metadata part and one content part.

    The content part is streamed from its source; only the part headers
    are held in memory.
    """

    def __init__(
        self,
        source: UploadSource,
        content_type: str,
        metadata: Optional[dict[str, Any]] = None,
        boundary: str = MULTIPART_BOUNDARY,
        chunk_size: int = UPLOAD_CHUNK_SIZE,
    ):
        self.source = source
        self.metadata = metadata
        self.boundary = boundary
        self.chunk_size = chunk_size

        delimiter = f"--{boundary}\r\n"
        head = ""
        if metadata is not None:
            head += (
                delimiter
                + 'Content-Disposition: form-data; name="metadata"\r\n\r\n'
                + json.dumps(metadata)
                + "\r\n"
            )
        filename = source.name.replace('"', "%22")
        head += (
            delimiter
            + f'Content-Disposition: form-data; name="content"; filename="{filename}"'
            + "\r\n"
            + f"Content-Type: {content_type}\r\n\r\n"
        )
        self._head = head.encode("utf-8")
        self._tail = f"\r\n--{boundary}--\r\n".encode("utf-8")

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    @property
    def content_length(self) -> int:
        return len(self._head) + self.source.size + len(self._tail)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": self.content_type,
            "Content-Length": str(self.content_length),
        }

    def stream(self) -> Iterator[bytes]:
        """Return a one-shot iterator over the encoded body."""
        yield self._head
        yield from self.source.iter_chunks(self.chunk_size)
        yield self._tail
