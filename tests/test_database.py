"""Tests for the SQLite face database."""

import threading

import pytest


def _entry(identifier="12345678", name="Ana Torres", features='{"landmarks": []}', **kwargs):
    from facematch.storage import FaceEntry

    return FaceEntry(identifier=identifier, display_name=name, features=features, **kwargs)


class TestFaceDatabase:
    """Test cases for FaceDatabase."""

    def test_empty(self, face_db):
        """Test a new database has no entries."""
        assert len(face_db) == 0
        assert face_db.list_faces() == []
        assert face_db.get_face("12345678") is None

    def test_insert_and_get(self, face_db):
        """Test an inserted entry can be read back."""
        entry = _entry(image=b"\x89PNG", timestamp=1700000000000)
        face_id = face_db.insert_face(entry)

        stored = face_db.get_face("12345678")

        assert entry.id == face_id
        assert stored.id == face_id
        assert stored.display_name == "Ana Torres"
        assert stored.image == b"\x89PNG"
        assert stored.features == '{"landmarks": []}'
        assert stored.timestamp == 1700000000000
        assert "12345678" in face_db
        assert face_db.exists("12345678")

    def test_duplicate_identifier_rejected(self, face_db):
        """Test inserting an existing identifier raises and keeps the first entry."""
        from facematch.storage import DuplicateIdentifierError

        face_db.insert_face(_entry(name="First"))

        with pytest.raises(DuplicateIdentifierError) as exc_info:
            face_db.insert_face(_entry(name="Second"))

        assert exc_info.value.identifier == "12345678"
        assert face_db.get_face("12345678").display_name == "First"
        assert len(face_db) == 1

    def test_list_in_insertion_order(self, face_db):
        """Test entries are listed in the order they were enrolled."""
        for identifier in ("33333333", "11111111", "22222222"):
            face_db.insert_face(_entry(identifier=identifier))

        assert [e.identifier for e in face_db.list_faces()] == [
            "33333333", "11111111", "22222222",
        ]

    def test_delete(self, face_db):
        """Test deleting reports whether anything was removed."""
        face_db.insert_face(_entry())

        assert face_db.delete_face("12345678")
        assert not face_db.delete_face("12345678")
        assert face_db.get_face("12345678") is None

    def test_replace_creates_new_row(self, face_db):
        """Test replace swaps the entry for a new row."""
        first = _entry(features="old", timestamp=1)
        face_db.insert_face(first)

        face_db.replace_face(_entry(features="new", timestamp=2))
        stored = face_db.get_face("12345678")

        assert len(face_db) == 1
        assert stored.features == "new"
        assert stored.timestamp == 2
        assert stored.id != first.id

    def test_to_dict_omits_image(self):
        """Test the dictionary form reports the image size only."""
        data = _entry(image=b"abc").to_dict(include_features=False)

        assert data["image_size"] == 3
        assert "image" not in data
        assert "features" not in data

    def test_file_backed_persistence(self, tmp_path):
        """Test entries survive reopening the database file."""
        from facematch.storage import FaceDatabase

        path = tmp_path / "nested" / "faces.db"
        db = FaceDatabase(path)
        db.insert_face(_entry())
        db.close()

        reopened = FaceDatabase(path)
        try:
            assert reopened.get_face("12345678") is not None
        finally:
            reopened.close()

    def test_concurrent_inserts(self, tmp_path):
        """Test inserts from several threads all land."""
        from facematch.storage import FaceDatabase

        db = FaceDatabase(tmp_path / "faces.db")
        errors = []

        def worker(start):
            try:
                for i in range(start, start + 10):
                    db.insert_face(_entry(identifier=f"{i:08d}"))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n * 10,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(db) == 40


class TestSubscriptions:
    """Test cases for listing subscriptions."""

    def test_initial_delivery(self, face_db):
        """Test a subscriber immediately receives the current listing."""
        face_db.insert_face(_entry())
        received = []

        face_db.subscribe(received.append)

        assert len(received) == 1
        assert [e.identifier for e in received[0]] == ["12345678"]

    def test_notified_on_changes(self, face_db):
        """Test insert, replace and delete each deliver a new listing."""
        received = []
        face_db.subscribe(received.append)

        face_db.insert_face(_entry())
        face_db.replace_face(_entry(features="new"))
        face_db.delete_face("12345678")
        face_db.delete_face("12345678")

        assert [len(listing) for listing in received] == [0, 1, 1, 0]

    def test_unsubscribe(self, face_db):
        """Test no deliveries after unsubscribing."""
        received = []
        unsubscribe = face_db.subscribe(received.append)

        unsubscribe()
        face_db.insert_face(_entry())

        assert len(received) == 1

    def test_failing_subscriber_isolated(self, face_db):
        """Test a raising subscriber does not block others or the write."""
        received = []

        def broken(_):
            raise RuntimeError("boom")

        face_db.subscribe(broken)
        face_db.subscribe(received.append)
        face_db.insert_face(_entry())

        assert face_db.exists("12345678")
        assert len(received) == 2
