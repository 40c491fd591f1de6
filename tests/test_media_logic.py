import io
import re
import sqlite3

import pytest

from contentkit.errors import ConflictError, NotFoundError, ValidationError
from contentkit.media_logic import MediaLogic, is_allowed_file_type
from contentkit.media_model import create_media_tables


@pytest.fixture
def events():
    return []


@pytest.fixture
def logic(tmp_path, events):
    conn = sqlite3.connect(":memory:")
    create_media_tables(conn)
    return MediaLogic(conn, tmp_path, emit=lambda name, payload: events.append((name, payload)))


def _upload(logic, name="photo.png", data=b"abc", content_type="image/png", folder_id=None, user_id=1):
    return logic.upload(io.BytesIO(data), name, content_type, len(data), folder_id, user_id)


@pytest.mark.parametrize(
    "filename, allowed",
    [
        ("photo.jpg", True),
        ("PHOTO.JPG", True),
        ("archive.tar.gz", True),
        ("report.pdf", True),
        ("setup.exe", False),
        ("run.sh", False),
        ("noextension", False),
        ("dir.png/file", False),
    ],
)
def test_is_allowed_file_type(filename, allowed):
    assert is_allowed_file_type(filename) is allowed


def test_upload_writes_file_and_record(logic, tmp_path, events):
    media = _upload(logic, data=b"hello")
    assert re.fullmatch(r"/uploads/\d{4}/\d{2}/\d+\.png", media.storage_path)
    assert media.url == media.storage_path
    assert (tmp_path / media.storage_path.lstrip("/")).read_bytes() == b"hello"
    assert events == [("media.uploaded", {"media_id": media.id, "mime_type": "image/png"})]
    stored = logic.get_by_id(media.id)
    assert stored.filename == "photo.png"
    assert stored.size == 5
    assert stored.url == media.storage_path


def test_upload_lowercases_stored_extension(logic):
    media = _upload(logic, name="Holiday.JPG")
    assert media.storage_path.endswith(".jpg")
    assert media.filename == "Holiday.JPG"


def test_upload_defaults_mime_type(logic):
    media = _upload(logic, name="notes.txt", content_type="")
    assert media.mime_type == "application/octet-stream"


def test_upload_rejects_disallowed_extension(logic, tmp_path):
    with pytest.raises(ValidationError, match=r"\.exe"):
        _upload(logic, name="virus.exe")
    assert not (tmp_path / "uploads").exists()


def test_list_filters_and_counts(logic):
    _upload(logic, name="a.png", content_type="image/png", user_id=1)
    _upload(logic, name="b.pdf", content_type="application/pdf", user_id=2)
    _upload(logic, name="c.gif", content_type="image/gif", user_id=2)

    images, total = logic.list(None, "image", 1, 20, 0)
    assert total == 2
    assert {item.filename for item in images} == {"a.png", "c.gif"}

    owned, owned_total = logic.list(None, "", 1, 20, 2)
    assert owned_total == 2
    assert all(item.uploaded_by == 2 for item in owned)
    assert all(item.url == item.storage_path for item in owned)


def test_list_paginates(logic):
    for index in range(3):
        _upload(logic, name=f"f{index}.png")
    first, total = logic.list(None, "", 1, 2, 0)
    second, _ = logic.list(None, "", 2, 2, 0)
    assert total == 3
    assert len(first) == 2 and len(second) == 1
    assert {m.id for m in first}.isdisjoint({m.id for m in second})


def test_list_by_folder(logic):
    folder = logic.create_folder("Pictures", None)
    inside = _upload(logic, folder_id=folder.id)
    _upload(logic)
    items, total = logic.list(folder.id, "", 1, 20, 0)
    assert total == 1
    assert items[0].id == inside.id


def test_update_sets_metadata(logic):
    media = _upload(logic)
    logic.update(media.id, "A cat", "Cat")
    stored = logic.get_by_id(media.id)
    assert (stored.alt, stored.title) == ("A cat", "Cat")


def test_update_missing_raises(logic):
    with pytest.raises(NotFoundError):
        logic.update(99, "x", "y")


def test_delete_removes_record_and_file(logic, tmp_path, events):
    media = _upload(logic)
    path = tmp_path / media.storage_path.lstrip("/")
    logic.delete(media.id)
    assert not path.exists()
    with pytest.raises(NotFoundError):
        logic.get_by_id(media.id)
    assert events[-1] == ("media.deleted", {"media_id": media.id, "mime_type": ""})
    with pytest.raises(NotFoundError):
        logic.delete(media.id)


def test_folder_tree(logic):
    root_b = logic.create_folder("B", None)
    root_a = logic.create_folder("A", None)
    child = logic.create_folder("A1", root_a.id)
    tree = logic.list_folders()
    assert [folder.id for folder in tree] == [root_b.id, root_a.id]
    assert [c.id for c in tree[1].children] == [child.id]
    assert tree[0].children == []


def test_rename_folder(logic):
    folder = logic.create_folder("Old", None)
    logic.rename_folder(folder.id, "New")
    assert [f.name for f in logic.list_folders()] == ["New"]
    with pytest.raises(NotFoundError):
        logic.rename_folder(999, "Nope")


def test_delete_folder_rules(logic):
    parent = logic.create_folder("Parent", None)
    child = logic.create_folder("Child", parent.id)
    with pytest.raises(ConflictError):
        logic.delete_folder(parent.id)

    media = _upload(logic, folder_id=child.id)
    with pytest.raises(ConflictError):
        logic.delete_folder(child.id)

    logic.delete(media.id)
    logic.delete_folder(child.id)
    logic.delete_folder(parent.id)
    assert logic.list_folders() == []