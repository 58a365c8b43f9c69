"""Tests for store/sqlite_db.py -- SQLite location cache."""

import threading

import pytest

from audio_resolver.models import RequesterInfo
from audio_resolver.store.sqlite_db import SQLiteLocationDB


@pytest.fixture
def db(tmp_path):
    ldb = SQLiteLocationDB(tmp_path / "sub" / "locations.db")
    yield ldb
    ldb.close()


class TestLocations:
    def test_missing(self, db):
        assert db.provide_audio_location("nope") is None

    def test_store_and_provide(self, db):
        db.store_audio_location("t1", "https://youtu.be/x", RequesterInfo("u1"))
        assert db.provide_audio_location("t1") == "https://youtu.be/x"

    def test_overwrite(self, db):
        db.store_audio_location("t1", "https://youtu.be/a")
        db.store_audio_location("t1", "https://youtu.be/b")
        assert db.provide_audio_location("t1") == "https://youtu.be/b"

    def test_forget(self, db):
        db.store_audio_location("t1", "https://youtu.be/a")
        assert db.forget_audio_location("t1") is True
        assert db.forget_audio_location("t1") is False
        assert db.provide_audio_location("t1") is None

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "locations.db"
        first = SQLiteLocationDB(path)
        first.store_audio_location("t1", "https://youtu.be/a")
        first.close()
        second = SQLiteLocationDB(path)
        assert second.provide_audio_location("t1") == "https://youtu.be/a"
        second.close()


class TestThreadSafety:
    def test_concurrent_writes(self, db):
        errors = []

        def worker(n):
            try:
                for i in range(20):
                    db.store_audio_location(f"t{n}-{i}", f"https://youtu.be/{n}{i}")
                db.close()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert db.provide_audio_location("t3-19") == "https://youtu.be/319"
