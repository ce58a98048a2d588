from __future__ import annotations

import struct
import threading
from dataclasses import dataclass
from pathlib import Path

from .errors import FormatError, TruncatedHeader, UnsupportedVersion

MAGIC = b"MMAPNODE"
SUPPORTED_VERSION = 1
HEADER_SIZE = 20
LEGACY_HEADER_SIZE = 4

# magic[8] version:u32 num_nodes:u32 coord_type:u8 reserved[3]
_MODERN = struct.Struct("<8sIIB3x")
_LEGACY = struct.Struct("<I")


@dataclass(frozen=True)
class GraphHeader:
    num_nodes: int
    magic: bytes | None = None
    version: int | None = None
    coord_type: int | None = None

    @property
    def is_legacy(self) -> bool:
        return self.magic is None

    def to_dict(self) -> dict[str, object]:
        return {
            "format": "legacy" if self.is_legacy else "modern",
            "magic": self.magic.decode("ascii") if self.magic is not None else None,
            "version": self.version,
            "numNodes": self.num_nodes,
            "coordType": self.coord_type,
        }


def read_header(data: bytes) -> GraphHeader:
    """Parse the node-graph header.

    Modern files start with the ``MMAPNODE`` tag followed by version, node count
    and coordinate type. Anything else of at least four bytes is read as the
    legacy layout whose first little-endian u32 is the node count.
    """
    buf = bytes(data[:HEADER_SIZE])
    if len(buf) >= HEADER_SIZE and buf[: len(MAGIC)] == MAGIC:
        magic, version, num_nodes, coord_type = _MODERN.unpack(buf)
        if version != SUPPORTED_VERSION:
            raise UnsupportedVersion(version, SUPPORTED_VERSION)
        header = GraphHeader(num_nodes=num_nodes, magic=magic, version=version, coord_type=coord_type)
    elif len(buf) >= LEGACY_HEADER_SIZE:
        (num_nodes,) = _LEGACY.unpack_from(buf, 0)
        header = GraphHeader(num_nodes=num_nodes)
    else:
        raise TruncatedHeader(len(buf))

    if header.num_nodes <= 0:
        raise FormatError(reason_code="graph_header_empty", message="graph header reports zero nodes")
    return header


def load_graph_header(path: str | Path) -> GraphHeader:
    # Only the header is needed; node payloads can be hundreds of MB.
    with Path(path).open("rb") as fh:
        return read_header(fh.read(HEADER_SIZE))


def encode_header(num_nodes: int, *, version: int = SUPPORTED_VERSION, coord_type: int = 0) -> bytes:
    return _MODERN.pack(MAGIC, version, num_nodes, coord_type)


def encode_legacy_header(num_nodes: int) -> bytes:
    return _LEGACY.pack(num_nodes)


class GraphState:
    """Process-wide view of the loaded graph header.

    Set once by the application lifespan; routing stays refused while
    ``header`` is None.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._header: GraphHeader | None = None
        self._error: str | None = None
        self._path: str | None = None

    @property
    def header(self) -> GraphHeader | None:
        return self._header

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def path(self) -> str | None:
        return self._path

    def total_nodes(self) -> int:
        header = self._header
        return header.num_nodes if header is not None else 0

    def set_header(self, header: GraphHeader, *, path: str | None = None) -> None:
        with self._lock:
            self._header = header
            self._error = None
            self._path = path

    def set_error(self, error: str, *, path: str | None = None) -> None:
        with self._lock:
            self._header = None
            self._error = error
            self._path = path

    def clear(self) -> None:
        with self._lock:
            self._header = None
            self._error = None
            self._path = None


GRAPH_STATE = GraphState()
