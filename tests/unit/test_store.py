import pytest

from bugboard.common.errors import StorageError
from bugboard.models import Attachment, WeeklySets
from bugboard.store import (
    CURRENT_WEEK_KEY,
    LAST_WEEK_KEY,
    BugRepository,
    InMemoryStore,
    JsonDirectoryStore,
    attachment_key,
)

from conftest import make_record


def test_in_memory_store_copies_values():
    store = InMemoryStore()
    value = [{"a": 1}]
    store.put("k", value)
    value[0]["a"] = 2
    assert store.get("k") == [{"a": 1}]
    assert store.get("missing", "dflt") == "dflt"


def test_in_memory_store_rejects_unserialisable():
    with pytest.raises(StorageError):
        InMemoryStore().put("k", {1, 2})


def test_json_directory_store_persists(tmp_path):
    store = JsonDirectoryStore(tmp_path / "store")
    store.put(CURRENT_WEEK_KEY, [{"incidentId": "A"}])

    reopened = JsonDirectoryStore(tmp_path / "store")
    assert reopened.get(CURRENT_WEEK_KEY) == [{"incidentId": "A"}]
    assert reopened.keys() == [CURRENT_WEEK_KEY]

    reopened.delete(CURRENT_WEEK_KEY)
    reopened.delete(CURRENT_WEEK_KEY)
    assert reopened.get(CURRENT_WEEK_KEY) is None


def test_json_directory_store_corrupt_file(tmp_path):
    store = JsonDirectoryStore(tmp_path)
    (tmp_path / f"{LAST_WEEK_KEY}.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        store.get(LAST_WEEK_KEY)


def test_repository_weekly_sets_layout():
    store = InMemoryStore()
    repo = BugRepository(store)
    repo.save_weekly_sets(WeeklySets(current=[make_record("A")], last=[make_record("B"), make_record("C")]))

    assert [r["incidentId"] for r in store.get(CURRENT_WEEK_KEY)] == ["A"]
    assert [r["incidentId"] for r in store.get(LAST_WEEK_KEY)] == ["B", "C"]

    sets = repo.load_weekly_sets()
    assert [r.incident_id for r in sets.last] == ["B", "C"]

    repo.clear_weekly_sets()
    assert repo.load_weekly_sets() == WeeklySets()


def test_repository_skips_unreadable_records():
    store = InMemoryStore({CURRENT_WEEK_KEY: [{"incidentId": "", "bugDescription": ""}, {"incidentId": "A"}]})
    assert [r.incident_id for r in BugRepository(store).load_weekly_sets().current] == ["A"]


def test_repository_attachments():
    store = InMemoryStore()
    repo = BugRepository(store)
    att = Attachment(id=1, name="a.png", type="image/png", size=3, upload_date="2025-03-10T00:00:00", data="data:image/png;base64,AAA=")
    repo.save_attachments("INC1", [att])

    assert store.get(attachment_key("INC1"))[0]["uploadDate"] == "2025-03-10T00:00:00"
    assert repo.load_attachments("INC1") == [att]
    repo.delete_attachments("INC1")
    assert repo.load_attachments("INC1") == []


def test_repository_options_fall_back_to_defaults():
    store = InMemoryStore()
    repo = BugRepository(store)
    assert repo.load_options("corrective_status") == ["Open", "Closed"]

    repo.save_options("root_cause", ["Other", "Other", "Env"])
    assert store.get("options_rootCause") == ["Other", "Env"]

    repo.save_options("environment", [])
    assert repo.load_options("environment") == ["3 - UAT", "4 - Prod"]


def test_json_directory_store_keys_differing_in_unsafe_chars(tmp_path):
    store = JsonDirectoryStore(tmp_path)
    store.put(attachment_key("INC 1"), [{"id": 1, "name": "a.pdf"}])
    store.put(attachment_key("INC_1"), [{"id": 2, "name": "b.pdf"}])

    assert store.get(attachment_key("INC 1")) == [{"id": 1, "name": "a.pdf"}]
    assert store.get(attachment_key("INC_1")) == [{"id": 2, "name": "b.pdf"}]
    assert len(list(tmp_path.glob("*.json"))) == 2

    store.delete(attachment_key("INC_1"))
    assert store.get(attachment_key("INC 1")) == [{"id": 1, "name": "a.pdf"}]


def test_json_directory_store_keys_round_trip(tmp_path):
    store = JsonDirectoryStore(tmp_path)
    for key in ["attachments_INC 1", "attachments_INC/2", "attachments_50%", CURRENT_WEEK_KEY]:
        store.put(key, [])
    assert store.keys() == sorted(["attachments_INC 1", "attachments_INC/2", "attachments_50%", CURRENT_WEEK_KEY])
