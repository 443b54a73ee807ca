# chitchat/tests/unit/test_attachment_store.py
import pytest

from chitchat.domain.exceptions import NotFoundError
from chitchat.infrastructure.attachment_store import LocalAttachmentStore


@pytest.fixture
def store(tmp_path):
    return LocalAttachmentStore(tmp_path / "uploads")


async def test_store_and_load(store, tmp_path):
    handle = await store.store(b"hello", "notes.TXT")

    assert handle.endswith(".txt")
    assert (tmp_path / "uploads" / handle).read_bytes() == b"hello"
    assert await store.load(handle) == b"hello"


async def test_handles_are_unique(store):
    first = await store.store(b"a", "a.png")
    second = await store.store(b"b", "a.png")

    assert first != second


async def test_odd_extensions_are_dropped(store):
    handle = await store.store(b"data", "archive.tar.g-z")

    assert "." not in handle


@pytest.mark.parametrize("handle", ["../etc/passwd", "..", "abc", "/tmp/x"])
async def test_path_traversal_is_refused(store, handle):
    with pytest.raises(NotFoundError):
        await store.load(handle)


async def test_missing_handle_is_not_found(store):
    with pytest.raises(NotFoundError):
        await store.load("0" * 32)


async def test_delete(store):
    handle = await store.store(b"bye", "bye.bin")

    assert await store.delete(handle) is True
    assert await store.delete(handle) is False
    with pytest.raises(NotFoundError):
        await store.load(handle)
