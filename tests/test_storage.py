import pytest

from marmalade_api.domain.models import PackageKind
from marmalade_api.storage import BlobStore, blob_key


def test_blob_key_layout():
    assert blob_key("foo", PackageKind.SINGLE, (1, 2)) == "foo.el/1.2"
    assert blob_key("baz", PackageKind.TAR, (0, 10)) == "baz.tar/0.10"
    assert blob_key("../etc", PackageKind.TAR, (1,)) == "_etc.tar/1"


def test_blob_store_read_write_delete(tmp_path):
    store = BlobStore(tmp_path)
    key = blob_key("foo", PackageKind.SINGLE, (1, 0))

    store.write(key, b"(provide 'foo)")

    assert store.read(key) == b"(provide 'foo)"
    store.delete(key)
    assert not (tmp_path / "foo.el").exists()
    with pytest.raises(FileNotFoundError):
        store.read(key)
