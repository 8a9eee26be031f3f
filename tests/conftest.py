import sys
from pathlib import Path
import importlib
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


class ChunkSource:
    """Byte source handing out one queued chunk per ``read`` call.

    Returns ``b""`` while the queue is empty; tests may append more chunks
    later to simulate data arriving after an end-of-input.
    """

    def __init__(self, chunks=()):
        self.chunks = list(chunks)
        self.calls = 0

    def read(self, n=-1):
        self.calls += 1
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        if 0 <= n < len(chunk):
            self.chunks.insert(0, chunk[n:])
            chunk = chunk[:n]
        return chunk


@pytest.fixture()
def chunk_source():
    """Factory for :class:`ChunkSource` instances."""
    return ChunkSource


@pytest.fixture()
def text_sample():
    return b"the quick brown fox jumped over the lazy dog"


@pytest.fixture()
def sample_file(tmp_path: Path, text_sample):
    """Write ``text_sample`` to a file and return its path."""
    path = tmp_path / "sample.txt"
    path.write_bytes(text_sample)
    return path
