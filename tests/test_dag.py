"""Tests for the DAG engine – runs without any external dependencies."""

import pytest

from ris_ingest.etl.dag import DAG, TaskStatus


def test_linear_dag_executes_in_order():
    """Tasks run in dependency order and context flows downstream."""
    execution_log = []

    def check(ctx):
        execution_log.append("check")
        return {"exists": False}

    def create(ctx):
        execution_log.append("create")
        assert ctx["exists"] is False
        return {"created": True}

    def report(ctx):
        execution_log.append("report")
        assert ctx["created"] is True

    dag = DAG("test_linear")
    dag.add_task("check", check)
    dag.add_task("create", create, depends_on=["check"])
    dag.add_task("report", report, depends_on=["create"])

    result = dag.run()
    assert result["status"] == "completed"
    assert execution_log == ["check", "create", "report"]
    assert dag.failed_tasks() == []


def test_initial_context_is_visible_to_first_task():
    dag = DAG("context")
    dag.add_task("read", lambda ctx: {"seen": ctx["message"]})
    dag.run(initial_context={"message": "MSH"})
    assert dag.tasks["read"].result == {"seen": "MSH"}


def test_failed_task_skips_whole_downstream_chain():
    """A crash is recorded; dependents (and their dependents) are skipped."""

    def failing_task(ctx):
        raise RuntimeError("store exploded")

    def downstream(ctx):
        pytest.fail("Should not have run")

    dag = DAG("test_failure")
    dag.add_task("fail", failing_task)
    dag.add_task("after", downstream, depends_on=["fail"])
    dag.add_task("after_after", downstream, depends_on=["after"])

    result = dag.run()
    assert result["status"] == "failed"
    assert dag.tasks["fail"].status == TaskStatus.FAILED
    assert dag.tasks["fail"].error == "RuntimeError: store exploded"
    assert dag.tasks["after"].status == TaskStatus.SKIPPED
    assert dag.tasks["after_after"].status == TaskStatus.SKIPPED
    assert result["tasks"]["after"]["status"] == "skipped"
    assert [t.name for t in dag.failed_tasks()] == ["fail"]


def test_independent_task_still_runs_after_failure():
    dag = DAG("partial")
    dag.add_task("fail", lambda ctx: 1 / 0)
    dag.add_task("other", lambda ctx: {"ok": True})

    result = dag.run()
    assert result["status"] == "failed"
    assert dag.tasks["other"].status == TaskStatus.SUCCESS


def test_cycle_detection():
    """DAG rejects circular dependencies."""
    dag = DAG("test_cycle")
    dag.add_task("a", lambda ctx: None, depends_on=["b"])
    dag.add_task("b", lambda ctx: None, depends_on=["a"])

    with pytest.raises(ValueError, match="Cycle detected"):
        dag.run()


def test_unknown_dependency():
    dag = DAG("test_unknown")
    dag.add_task("a", lambda ctx: None, depends_on=["ghost"])

    with pytest.raises(ValueError, match="unknown task 'ghost'"):
        dag.run()


def test_duplicate_task_name():
    dag = DAG("dup")
    dag.add_task("a", lambda ctx: None)
    with pytest.raises(ValueError, match="Duplicate task name"):
        dag.add_task("a", lambda ctx: None)


def test_diamond_dag():
    """Diamond shape: A -> B, A -> C, B+C -> D."""
    dag = DAG("diamond")
    dag.add_task("a", lambda ctx: {"val": 1})
    dag.add_task("b", lambda ctx: {"b_val": ctx["val"] + 10}, depends_on=["a"])
    dag.add_task("c", lambda ctx: {"c_val": ctx["val"] + 20}, depends_on=["a"])
    dag.add_task(
        "d",
        lambda ctx: {"total": ctx["b_val"] + ctx["c_val"]},
        depends_on=["b", "c"],
    )

    result = dag.run()
    assert result["status"] == "completed"
    assert dag.tasks["d"].result["total"] == 32  # 11 + 21
