from nodeplan.config.models import MachineRecord
from nodeplan.planner.models import (
    CONTROL_PLANE_ROLE_LABEL,
    ETCD_ROLE_LABEL,
    OS_LABEL,
    WORKER_ROLE_LABEL,
    PlanEntry,
    new_plan_entry,
)
from nodeplan.planner.predicates import (
    any_role_excluding_windows,
    is_control_plane,
    is_etcd,
    is_only_worker,
    is_worker,
    role_and,
    role_not,
    role_or,
    windows,
)


def _entry(os, worker=True):
    return new_plan_entry(MachineRecord(id="m1", os=os, worker=worker))


def _entry_without_roles(os):
    return PlanEntry(machine=MachineRecord(id="m1", os=os), labels={OS_LABEL: os})


def test_windows_checks_os_label():
    data = {"windows": True, "linux": False, "": False}
    for os, expected in data.items():
        entry = PlanEntry(machine=MachineRecord(id="x"), labels={OS_LABEL: os})
        assert windows(entry) is expected


def test_role_not_inverts():
    assert role_not(windows)(_entry("linux")) is True
    assert role_not(windows)(_entry("windows")) is False


def test_any_role_excluding_windows():
    assert any_role_excluding_windows(_entry("linux")) is True
    assert any_role_excluding_windows(_entry("windows")) is False
    assert any_role_excluding_windows(_entry_without_roles("linux")) is False


def test_any_role_excluding_windows_false_when_roles_are_false():
    entry = PlanEntry(
        machine=MachineRecord(id="m"),
        labels={
            OS_LABEL: "linux",
            ETCD_ROLE_LABEL: "false",
            CONTROL_PLANE_ROLE_LABEL: "false",
            WORKER_ROLE_LABEL: "false",
        },
    )
    assert any_role_excluding_windows(entry) is False


def test_missing_labels_are_false_not_errors():
    entry = PlanEntry(machine=MachineRecord(id="m"), labels={})
    assert not is_etcd(entry)
    assert not is_control_plane(entry)
    assert not is_worker(entry)
    assert not windows(entry)
    assert not any_role_excluding_windows(entry)


def test_label_values_are_case_insensitive():
    entry = PlanEntry(machine=MachineRecord(id="m"), labels={ETCD_ROLE_LABEL: "True"})
    assert is_etcd(entry)


def test_is_only_worker():
    worker = new_plan_entry(MachineRecord(id="w", worker=True))
    all_roles = new_plan_entry(MachineRecord(id="a", worker=True, etcd=True, control_plane=True))
    assert is_only_worker(worker)
    assert not is_only_worker(all_roles)


def test_new_plan_entry_normalizes_os_and_keeps_machine_labels():
    entry = new_plan_entry(MachineRecord(id="m", os="Windows", etcd=True, labels={"zone": "a"}))
    assert entry.labels[OS_LABEL] == "windows"
    assert entry.labels[ETCD_ROLE_LABEL] == "true"
    assert entry.labels[WORKER_ROLE_LABEL] == "false"
    assert entry.labels["zone"] == "a"

    unknown = new_plan_entry(MachineRecord(id="u", os=""))
    assert unknown.labels[OS_LABEL] == "linux"


def test_combinators_compose():
    etcd_only = new_plan_entry(MachineRecord(id="e", etcd=True))
    linux_etcd = role_and(role_not(windows), is_etcd)
    etcd_or_worker = role_or(is_etcd, is_worker)
    assert linux_etcd(etcd_only)
    assert etcd_or_worker(etcd_only)
    assert not role_and(is_etcd, is_worker)(etcd_only)
    assert role_and()(etcd_only)
    assert not role_or()(etcd_only)
