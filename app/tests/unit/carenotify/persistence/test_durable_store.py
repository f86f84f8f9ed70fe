import pytest

from carenotify.configuration import StorageSettings
from carenotify.errors import StorageError
from carenotify.persistence import InMemoryDurableStore, create_durable_store


@pytest.mark.unit
class TestInMemoryDurableStore:
    def test_set_get_delete(self):
        store = InMemoryDurableStore()

        store.set("k", {"a": [1, 2]})

        assert store.get("k") == {"a": [1, 2]}
        assert "k" in store
        assert len(store) == 1

        store.delete("k")
        store.delete("k")

        assert store.get("k") is None
        assert len(store) == 0

    def test_values_are_copied(self):
        store = InMemoryDurableStore()
        value = {"items": [1]}
        store.set("k", value)

        value["items"].append(2)
        store.get("k")["items"].append(3)

        assert store.get("k") == {"items": [1]}

    def test_rejects_non_json_values(self):
        store = InMemoryDurableStore()

        with pytest.raises(StorageError) as err:
            store.set("k", {"when": object()})

        assert err.value.operation == "set"
        assert err.value.key == "k"
        assert "k" not in store


@pytest.mark.unit
class TestCreateDurableStore:
    def test_memory(self):
        store = create_durable_store(StorageSettings(STORE_BACKEND="memory"))

        assert isinstance(store, InMemoryDurableStore)

    def test_backend_is_case_insensitive(self):
        store = create_durable_store(StorageSettings(STORE_BACKEND="Memory"))

        assert isinstance(store, InMemoryDurableStore)

    def test_dynamodb(self, monkeypatch):
        created = {}

        def fake_client(service, **kwargs):
            created["service"] = service
            created.update(kwargs)
            return object()

        monkeypatch.setattr("carenotify.persistence.dynamodb.boto3.client", fake_client)

        store = create_durable_store(
            StorageSettings(
                STORE_BACKEND="dynamodb",
                STORE_DYNAMODB_TABLE_NAME="notify-table",
                AWS_REGION="eu-west-1",
                AWS_ENDPOINT_URL="http://localhost:8000",
            )
        )

        assert store.table_name == "notify-table"
        assert created == {
            "service": "dynamodb",
            "region_name": "eu-west-1",
            "endpoint_url": "http://localhost:8000",
        }

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown store backend: redis"):
            create_durable_store(StorageSettings(STORE_BACKEND="redis"))
