import json
import os
from pathlib import Path

import pytest

from nodeplan.planner.errors import PlanStoreError, StoreUnavailableError
from nodeplan.planner.models import Instruction, NodePlan, PlanFile, Probe
from nodeplan.store.base import plans_equal
from nodeplan.store.filesystem import FilePlanStore, record_name
from nodeplan.store.memory import InMemoryPlanStore


def _plan(stamp="s1", env=("INSTALL_RKE2_EXEC=server",)):
    return NodePlan(
        instructions=[Instruction(name="install", command="sh", image="img:v1", args=["-c", "run.sh"], env=list(env))],
        files=[PlanFile(path="/etc/rancher/rke2/config.yaml.d/50-rancher.yaml", content="a: 1\n")],
        probes={"kubelet": Probe(url="http://127.0.0.1:10248/healthz")},
        restart_stamp=stamp,
    )


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryPlanStore()
    return FilePlanStore(tmp_path / "plans")


def test_get_missing_returns_none(store):
    assert store.get("nope") is None


def test_put_increments_revision(store):
    first = store.put("m1", _plan("a"))
    second = store.put("m1", _plan("b"))
    assert (first.revision, second.revision) == (1, 2)
    got = store.get("m1")
    assert got.revision == 2
    assert got.plan == _plan("b")
    assert got.stored_at


def test_delete_is_idempotent(store):
    store.put("m1", _plan())
    store.delete("m1")
    store.delete("m1")
    assert store.get("m1") is None


def test_plans_equal():
    assert plans_equal(_plan(), _plan())
    assert plans_equal(None, None)
    assert not plans_equal(_plan(), None)
    assert not plans_equal(_plan("a"), _plan("b"))
    # env order matters
    assert not plans_equal(
        _plan(env=("A=1", "B=2")),
        _plan(env=("B=2", "A=1")),
    )
    extra = _plan().model_copy(update={"instructions": _plan().instructions * 2})
    assert not plans_equal(_plan(), extra)
    other_file = _plan().model_copy(update={"files": [PlanFile(path="/x", content="")]})
    assert not plans_equal(_plan(), other_file)
    # same instructions, different probes or files still differ
    other_probe = _plan().model_copy(update={"probes": {"kubelet": Probe(url="http://127.0.0.1:10250/healthz")}})
    assert not plans_equal(_plan(), other_probe)
    assert plans_equal(_plan(), _plan().model_copy(update={"files": list(_plan().files)}))


def test_file_store_survives_reopen(tmp_path: Path):
    root = tmp_path / "plans"
    FilePlanStore(root).put("m1", _plan())
    got = FilePlanStore(root).get("m1")
    assert got.plan == _plan()
    assert got.revision == 1


def test_file_store_record_layout(tmp_path: Path):
    store = FilePlanStore(tmp_path)
    store.put("Node_01.example.com", _plan())
    path = store.path_for("Node_01.example.com")
    assert path.name == "node-01.example.com-machine-plan.json"

    body = json.loads(path.read_text())
    assert body["machine_id"] == "Node_01.example.com"
    assert body["revision"] == 1
    assert isinstance(body["plan"], str)
    # no temporary files left behind
    assert [p.name for p in tmp_path.iterdir()] == [path.name]


def test_record_name_is_bounded():
    name = record_name("x" * 200)
    assert len(name) <= 63
    assert record_name("x" * 200) == name
    assert record_name("x" * 200) != record_name("x" * 199 + "y")


def test_file_store_rejects_record_of_other_machine(tmp_path: Path):
    store = FilePlanStore(tmp_path)
    store.put("a", _plan())
    # "A" and "a" share a sanitized record name
    with pytest.raises(PlanStoreError):
        store.get("A")


def test_file_store_rejects_corrupt_record(tmp_path: Path):
    store = FilePlanStore(tmp_path)
    store.path_for("m1").write_text("{not json")
    with pytest.raises(PlanStoreError):
        store.get("m1")

    store.path_for("m1").write_text(json.dumps({"machine_id": "m1", "plan": "@@@"}))
    with pytest.raises(PlanStoreError):
        store.get("m1")


@pytest.mark.parametrize(
    "body",
    [
        ["x"],
        "just a string",
        {"machine_id": "m1", "revision": "two", "plan": ""},
        {"machine_id": "m1", "revision": 1, "plan": 42},
    ],
)
def test_file_store_rejects_malformed_record(tmp_path: Path, body):
    store = FilePlanStore(tmp_path)
    store.path_for("m1").write_text(json.dumps(body))
    with pytest.raises(PlanStoreError):
        store.get("m1")


def test_failed_write_keeps_previous_record(tmp_path: Path, monkeypatch):
    store = FilePlanStore(tmp_path)
    store.put("m1", _plan("a"))

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(StoreUnavailableError):
        store.put("m1", _plan("b"))
    monkeypatch.undo()

    got = store.get("m1")
    assert got.plan == _plan("a")
    assert got.revision == 1
    assert [p.name for p in tmp_path.iterdir()] == [store.path_for("m1").name]
