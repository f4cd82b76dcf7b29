"""Tests for the JSON session store."""

from __future__ import annotations

import itertools
import json

import pytest

from breakitdown.errors import SessionNotFound
from breakitdown.models.decomposition import IdentificationResult, KnowledgeCard
from breakitdown.models.session import NodeDocument, SessionSnapshot
from breakitdown.storage.sessions import SessionStore
from tests.conftest import CARD_JSON


def _snapshot(name: str = "Chair") -> SessionSnapshot:
    tree = NodeDocument(
        id="root",
        name=name,
        icon="🪑",
        state="expanded",
        children=[NodeDocument(id="w", name="Wood", state="terminal", is_raw_material=True)],
    )
    return SessionSnapshot(tree=tree, overrides={"w": (10.0, 20.0)})


@pytest.fixture
def store(tmp_path) -> SessionStore:
    ticks = itertools.count(1000)
    return SessionStore(tmp_path / "sessions", clock=lambda: float(next(ticks)))


def test_create_and_get(store):
    record = store.create("My chair", _snapshot(), IdentificationResult(name="Chair"))
    assert record.root_name == "Chair"
    assert record.root_icon == "🪑"
    assert record.created_at == record.updated_at

    loaded = store.get(record.id)
    assert loaded.title == "My chair"
    assert loaded.snapshot == record.snapshot
    assert loaded.snapshot.overrides["w"] == (10.0, 20.0)
    assert loaded.identification.name == "Chair"
    assert loaded.last_accessed_at > record.last_accessed_at


def test_list_orders_by_update(store):
    a = store.create("A", _snapshot("Chair"))
    b = store.create("B", _snapshot("Table"))
    assert [s.id for s in store.list()] == [b.id, a.id]
    store.update(a.id, title="A2")
    summaries = store.list()
    assert [s.id for s in summaries] == [a.id, b.id]
    assert summaries[0].title == "A2"


def test_update_snapshot_refreshes_root(store):
    record = store.create("A", _snapshot("Chair"))
    updated = store.update(record.id, snapshot=_snapshot("Stool"))
    assert updated.root_name == "Stool"
    assert updated.title == "A"
    assert updated.updated_at > record.updated_at


def test_delete(store):
    record = store.create("A", _snapshot())
    store.delete(record.id)
    with pytest.raises(SessionNotFound):
        store.get(record.id)
    with pytest.raises(SessionNotFound):
        store.delete(record.id)


def test_rejects_path_like_ids(store):
    with pytest.raises(SessionNotFound):
        store.get("../../etc/passwd")


def test_list_skips_corrupt_files(store):
    store.create("A", _snapshot())
    (store.data_dir / ("f" * 32 + ".json")).write_text("{not json", encoding="utf-8")
    assert len(store.list()) == 1


def test_cards_are_stored_in_their_api_shape(store):
    card = KnowledgeCard.model_validate_json(CARD_JSON)
    snapshot = _snapshot().model_copy(update={"knowledge_cards": {"root": card}})
    record = store.create("Carded", snapshot)

    stored = json.loads((store.data_dir / f"{record.id}.json").read_text(encoding="utf-8"))
    stored_card = stored["snapshot"]["knowledge_cards"]["root"]
    assert stored_card == card.model_dump(mode="json", by_alias=True)
    assert stored_card["doc_number"] == "PROC-000001"
    assert stored_card["steps"][0]["action_title"] == "Prepare parts"
    assert store.get(record.id).snapshot.knowledge_cards["root"] == card
