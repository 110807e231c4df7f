import os

import pytest

from keyshare.core.errors import InvalidPath, NotFound, StorageFault
from keyshare.services.object_store import ObjectStore

from tests.helpers import body


@pytest.fixture
def store(tmp_path) -> ObjectStore:
    store = ObjectStore(str(tmp_path / "uploads"))
    store.ensure_root()
    return store


async def _write(store: ObjectStore, namespace: str, filename: str, *parts: bytes):
    handle = await store.create(namespace, filename)
    try:
        return await store.write_stream(handle, body(*parts))
    finally:
        await store.close(handle)


def _read(store: ObjectStore, namespace: str, filename: str) -> bytes:
    with open(store.path_for(namespace, filename), "rb") as f:
        return f.read()


@pytest.mark.asyncio
async def test_create_makes_namespace_and_streams_chunks_in_order(store):
    written = await _write(store, "ns1", "a.txt", b"hello ", b"", b"world")

    assert written == 11
    assert _read(store, "ns1", "a.txt") == b"hello world"
    assert await store.exists("ns1", "a.txt")


@pytest.mark.asyncio
@pytest.mark.parametrize("filename", ["", ".", "..", "a/b", "..\\x", "nul\x00"])
async def test_create_rejects_unusable_filenames(store, filename):
    with pytest.raises(InvalidPath):
        await store.create("ns1", filename)
    assert not os.path.exists(os.path.join(store.root, "ns1"))


@pytest.mark.asyncio
@pytest.mark.parametrize("namespace", ["", "..", "../outside", "a/b"])
async def test_create_rejects_namespace_traversal(store, namespace):
    with pytest.raises(InvalidPath):
        await store.create(namespace, "a.txt")


@pytest.mark.asyncio
async def test_create_reports_filesystem_errors_as_storage_fault(store):
    await _write(store, "ns1", "a.txt", b"x")
    # a directory where the file should go
    os.makedirs(store.path_for("ns1", "taken"))

    with pytest.raises(StorageFault):
        await store.create("ns1", "taken")


@pytest.mark.asyncio
async def test_overwrite_truncates_existing_file(store):
    await _write(store, "ns1", "a.txt", b"a much longer original body")

    written = await store.overwrite("ns1", "a.txt", body(b"short"))

    assert written == 5
    assert _read(store, "ns1", "a.txt") == b"short"


@pytest.mark.asyncio
async def test_overwrite_missing_file_is_not_found(store):
    with pytest.raises(NotFound):
        await store.overwrite("ns1", "missing.txt", body(b"x"))
    assert not os.path.exists(store.path_for("ns1", "missing.txt"))


@pytest.mark.asyncio
async def test_rename_within_namespace(store):
    await _write(store, "ns1", "old.txt", b"content")

    await store.rename("ns1", "old.txt", "new.txt")

    assert not await store.exists("ns1", "old.txt")
    assert _read(store, "ns1", "new.txt") == b"content"


@pytest.mark.asyncio
async def test_rename_missing_source_is_not_found(store):
    with pytest.raises(NotFound):
        await store.rename("ns1", "old.txt", "new.txt")


@pytest.mark.asyncio
async def test_delete_namespace_removes_every_file(store):
    await _write(store, "ns1", "a.txt", b"a")
    await _write(store, "ns1", "b.txt", b"b")
    await _write(store, "ns2", "c.txt", b"c")

    await store.delete_namespace("ns1")

    assert not os.path.exists(os.path.join(store.root, "ns1"))
    assert await store.exists("ns2", "c.txt")


@pytest.mark.asyncio
async def test_delete_missing_namespace_is_not_found(store):
    with pytest.raises(NotFound):
        await store.delete_namespace("nope")


@pytest.mark.asyncio
async def test_list_namespaces(store, tmp_path):
    await _write(store, "ns1", "a.txt", b"a")
    await _write(store, "ns2", "b.txt", b"b")
    with open(os.path.join(store.root, "stray-file"), "w") as f:
        f.write("not a namespace")

    namespaces = await store.list_namespaces()

    assert set(namespaces) == {"ns1", "ns2"}
    assert await ObjectStore(str(tmp_path / "missing")).list_namespaces() == {}
