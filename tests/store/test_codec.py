import base64
import gzip

import pytest

from nodeplan.planner.errors import PlanStoreError
from nodeplan.planner.models import Instruction, NodePlan
from nodeplan.store.codec import compress_plan, decompress_plan
from nodeplan.utils.naming import safe_concat_name, sanitize_name


@pytest.mark.parametrize(
    "max_length,names,expected",
    [
        (63, ["very", "long", "name", "to", "test", "shortening", "behavior", "this", "should", "exceed",
              "max", "k8s", "name", "length"],
         "very-long-name-to-test-shortening-behavior-this-should-ex-e8118"),
        (53, ["long", "cluster", "name", "testing", "managed", "system-upgrade", "controller", "fleet", "agent"],
         "long-cluster-name-testing-managed-system-upgrad-0beef"),
        # shorter than the hash: truncate only
        (3, ["this", "will", "not", "be", "hashed"], "thi"),
        (90, ["simple", "concat", "no", "hash", "needed"], "simple-concat-no-hash-needed"),
        (0, ["input"], ""),
        (6, ["input", "s"], "deab5"),
        (8, ["a", "&", "b", "=", "c"], "a-359087"),
    ],
)
def test_safe_concat_name(max_length, names, expected):
    assert safe_concat_name(max_length, *names) == expected


def test_safe_concat_name_respects_limit():
    for n in range(6, 70):
        assert len(safe_concat_name(n, "machine" * 20, "plan")) <= n


def test_sanitize_name():
    assert sanitize_name("Node_01.Example.COM") == "node-01.example.com"
    assert sanitize_name("--weird//id--") == "weird-id"


def test_compress_plan_is_deterministic():
    plan = NodePlan(
        instructions=[Instruction(name="install", command="sh", image="img:v1")],
        restart_stamp="abc",
    )
    assert compress_plan(plan) == compress_plan(plan)
    assert decompress_plan(compress_plan(plan)) == plan


def test_compressed_plan_is_base64_gzip_json():
    data = compress_plan(NodePlan(restart_stamp="abc"))
    raw = gzip.decompress(base64.b64decode(data))
    assert b'"restart_stamp":"abc"' in raw


@pytest.mark.parametrize(
    "data",
    [
        "not base64!",
        base64.b64encode(b"plain text").decode(),
        base64.b64encode(gzip.compress(b"[1, 2, 3]")).decode(),
    ],
)
def test_decompress_rejects_bad_data(data):
    with pytest.raises(PlanStoreError):
        decompress_plan(data)
