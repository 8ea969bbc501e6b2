import logging

import pytest

from jobplan.core.agent import TaskDescriptor
from jobplan.core.job import Job, ValidationError

from conftest import RecordingAgent


def test_uid_is_stored_verbatim(make_agent):
    agent = make_agent(["a"])
    scraper = object()
    job = Job("run-1", agent, scraper)
    assert job.uid == "run-1"
    assert job.agent is agent
    assert job.scraper is scraper


@pytest.mark.parametrize("bad_uid", ["", None, 5, ["run"]])
def test_invalid_uid_is_rejected(bad_uid, make_agent):
    with pytest.raises(ValidationError):
        Job(bad_uid, make_agent(["a"]), None)


def test_uid_can_be_omitted(make_agent):
    job = Job(agent=make_agent(["a"]), scraper=None)
    assert job.uid is None


def test_validation_error_is_a_value_error():
    assert issubclass(ValidationError, ValueError)


def test_params_merge_and_chain(make_agent):
    job = Job("run", make_agent(), None)
    assert job.params({"a": 1}).params({"b": 2}) is job
    assert job.parameters == {"a": 1, "b": 2}


def test_params_last_write_wins(make_agent):
    job = Job("run", make_agent(), None)
    job.params({"a": 1}).params({"a": 2})
    assert job.parameters == {"a": 2}


def test_params_merge_is_shallow(make_agent):
    job = Job("run", make_agent(), None)
    job.params({"opts": {"x": 1}}).params({"opts": {"y": 2}})
    assert job.parameters == {"opts": {"y": 2}}


@pytest.mark.parametrize("bad_params", [[1, 2], ("a", 1), "a=1", 3, None])
def test_params_rejects_non_mappings(bad_params, make_agent):
    with pytest.raises(ValidationError):
        Job("run", make_agent(), None).params(bad_params)


def test_parameters_is_a_copy(make_agent):
    job = Job("run", make_agent(), None).params({"a": 1})
    job.parameters["a"] = 99
    assert job.parameters == {"a": 1}


def test_enqueue_preserves_order_and_duplicates(make_agent):
    job = Job("run", make_agent(), None)
    assert job.enqueue("x").enqueue("y").enqueue("x") is job
    assert job.enqueued_tasks == ["x", "y", "x"]


@pytest.mark.parametrize("bad_task", ["", None, 7, b"x"])
def test_enqueue_rejects_invalid_ids(bad_task, make_agent):
    job = Job("run", make_agent(), None)
    with pytest.raises(ValidationError):
        job.enqueue(bad_task)
    assert job.enqueued_tasks == []


def test_plan_is_unset_before_build(make_agent):
    job = Job("run", make_agent(["a"]), None)
    assert job.execution_plan is None
    assert job.execution_queue == []


def test_group_order_from_agent_and_task_order_from_enqueue(make_agent):
    agent = make_agent(["a", "b"], ["c"])
    job = Job("run", agent, None).enqueue("b").enqueue("a")
    job.build_execution_plan()

    first_group = agent.groups[0]
    assert len(job.execution_plan) == 1
    assert job.execution_plan[0][0] is first_group[1]
    assert job.execution_plan[0][1] is first_group[0]


def test_groups_keep_agent_order_regardless_of_enqueue_order(make_agent):
    agent = make_agent(["login"], ["list", "detail"], ["export"])
    job = Job("run", agent, None)
    for task_id in ["export", "detail", "login", "list"]:
        job.enqueue(task_id)
    job.build_execution_plan()

    ids = [[d.task_id for d in group] for group in job.execution_plan]
    assert ids == [["login"], ["detail", "list"], ["export"]]


def test_duplicate_enqueue_repeats_descriptor(make_agent):
    agent = make_agent(["a"])
    job = Job("run", agent, None).enqueue("a").enqueue("a")
    job.build_execution_plan()

    descriptor = agent.groups[0][0]
    assert len(job.execution_plan[0]) == 2
    assert all(d is descriptor for d in job.execution_plan[0])


def test_duplicate_ids_in_group_resolve_to_first_descriptor():
    first = TaskDescriptor("a", {"n": 1})
    second = TaskDescriptor("a", {"n": 2})
    agent = RecordingAgent([[first, second]])
    job = Job("run", agent, None).enqueue("a").enqueue("a")
    job.build_execution_plan()

    assert job.execution_plan == [[first, first]]
    assert job.execution_plan[0][1] is first


def test_no_enqueued_tasks_gives_empty_plan(make_agent):
    job = Job("run", make_agent(["a"], ["b"]), None)
    job.build_execution_plan()
    assert job.execution_plan == []


def test_unknown_tasks_are_dropped_with_warning(make_agent, caplog):
    job = Job("run", make_agent(["a"]), None).enqueue("ghost").enqueue("a")
    with caplog.at_level(logging.WARNING, logger="jobplan.core.job"):
        job.build_execution_plan()

    assert [[d.task_id for d in g] for g in job.execution_plan] == [["a"]]
    assert "ghost" in caplog.text


def test_task_in_several_groups_is_planned_in_each(make_agent):
    job = Job("run", make_agent(["a", "b"], ["b", "c"]), None).enqueue("b")
    job.build_execution_plan()
    assert [[d.task_id for d in g] for g in job.execution_plan] == [["b"], ["b"]]


def test_rebuild_replaces_plan(make_agent):
    job = Job("run", make_agent(["a"], ["b"]), None).enqueue("a")
    job.build_execution_plan()
    first_plan = job.execution_plan

    job.enqueue("b")
    job.build_execution_plan()

    assert [[d.task_id for d in g] for g in job.execution_plan] == [["a"], ["b"]]
    assert job.execution_plan is not first_plan
    assert [[d.task_id for d in g] for g in first_plan] == [["a"]]


def test_mapping_descriptors_are_supported():
    topology = [[{"task_id": "a"}, {"task_id": "b"}], [{"task_id": "c"}]]
    job = Job("run", RecordingAgent(topology), None).enqueue("b").enqueue("a")
    job.build_execution_plan()
    assert job.execution_plan == [[{"task_id": "b"}, {"task_id": "a"}]]
    assert job.execution_plan[0][0] is topology[0][1]


def test_build_does_not_mutate_topology(make_agent):
    agent = make_agent(["a", "b"], ["c"])
    snapshot = [list(group) for group in agent.groups]
    Job("run", agent, None).enqueue("c").enqueue("b").build_execution_plan()
    assert agent.groups == snapshot


def test_run_applies_setup_before_building(make_agent):
    agent = make_agent(["a"])
    job = Job("run", agent, None).enqueue("a")

    assert job.run() is None
    assert agent.calls == ["apply_setup", "execution_topology"]
    assert agent.setup_count == 1
    assert [[d.task_id for d in g] for g in job.execution_plan] == [["a"]]


def test_run_leaves_execution_queue_empty(make_agent):
    job = Job("run", make_agent(["a"]), None).enqueue("a")
    job.run()
    assert job.execution_queue == []


def test_to_dict_before_and_after_run(make_agent):
    agent = RecordingAgent([[TaskDescriptor("a", {"self_sync": True}), TaskDescriptor("b")]])
    job = Job("run", agent, None).params({"since": "today"}).enqueue("b").enqueue("a")

    assert job.to_dict()["execution_plan"] is None

    job.run()
    assert job.to_dict() == {
        "uid": "run",
        "params": {"since": "today"},
        "enqueued_tasks": ["b", "a"],
        "execution_plan": [[{"task_id": "b"}, {"task_id": "a", "self_sync": True}]],
    }


def test_unnamed_job_is_labelled_in_logs(make_agent, caplog):
    job = Job(agent=make_agent(["a"]), scraper=None).enqueue("ghost")
    with caplog.at_level(logging.WARNING, logger="jobplan.core.job"):
        job.build_execution_plan()

    assert "Job <unnamed>:" in caplog.text
    assert "None" not in caplog.text
