import pytest

from bond.core.GraphStore import STORAGE_KEY, GraphStore
from bond.core.Storage import FileStorage, MemoryStorage
from bond.server.config import MEMORY_STORAGE, Settings, load_settings


class TestFileStorage:

    def test_missing_key_reads_none(self, tmp_path):
        assert FileStorage(tmp_path / "slots").get("bond-app-data") is None

    def test_set_get_remove(self, tmp_path):
        storage = FileStorage(tmp_path / "slots")

        storage.set("bond-app-data", '{"people": []}')
        assert storage.get("bond-app-data") == '{"people": []}'
        assert (tmp_path / "slots" / "bond-app-data.json").exists()

        storage.remove("bond-app-data")
        storage.remove("bond-app-data")
        assert storage.get("bond-app-data") is None

    def test_rejects_path_like_keys(self, tmp_path):
        with pytest.raises(ValueError):
            FileStorage(tmp_path).get("../escape")

    def test_graph_survives_restart(self, tmp_path):
        store = GraphStore(FileStorage(tmp_path))
        me = store.set_as_user("Me")
        x = store.add_person("X")
        store.add_connection(me.id, x.id)

        reopened = GraphStore(FileStorage(tmp_path))
        assert reopened.graph == store.graph

    def test_corrupt_file_starts_empty(self, tmp_path):
        (tmp_path / f"{STORAGE_KEY}.json").write_text("{oops", encoding="utf-8")

        store = GraphStore(FileStorage(tmp_path))
        assert store.graph.people == []


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("BOND_STORAGE_DIR", "BOND_STORAGE_KEY", "BOND_HOST", "BOND_PORT"):
            monkeypatch.delenv(name, raising=False)

        settings = load_settings(env_path=None)

        assert settings == Settings()
        assert settings.storage_key == STORAGE_KEY
        assert settings.port == 3001

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BOND_STORAGE_DIR", str(tmp_path))
        monkeypatch.setenv("BOND_STORAGE_KEY", "other")
        monkeypatch.setenv("BOND_PORT", "8080")

        settings = load_settings(env_path=None)

        assert settings.port == 8080
        storage = settings.create_storage()
        assert isinstance(storage, FileStorage)
        assert storage.root == tmp_path

    def test_memory_storage(self):
        assert isinstance(Settings(storage_dir=MEMORY_STORAGE).create_storage(), MemoryStorage)
