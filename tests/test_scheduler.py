"""
Tests for dependency-ordered bundle rollout.
"""

from unittest.mock import Mock, call

import pytest

from caprover_api.errors import BuildFailedError, DependencyResolutionError, TransientNetworkError
from caprover_api.manifest.models import Bundle, ServiceSpec
from caprover_api.retry import RetryingExecutor
from caprover_api.scheduler import DependencyScheduler


def make_bundle(graph):
    """graph: {name: [deps]} in manifest order."""
    return Bundle(services={
        name: ServiceSpec(name=name, image=f"{name}:latest", depends_on=deps)
        for name, deps in graph.items()
    })


def make_scheduler():
    manager = Mock()
    executor = RetryingExecutor(attempts=3, delay=0, sleep=Mock())
    scheduler = DependencyScheduler(manager.client, executor, manager.waiter)
    return scheduler, manager


def step_names(manager):
    """(step, service) pairs from the recorded calls."""
    steps = []
    for c in manager.mock_calls:
        name = c[0]
        if name.startswith("client.") or name.startswith("waiter."):
            steps.append((name.split(".", 1)[1], c.args[0]))
    return steps


class TestOrdering:
    """Test that dependencies finish before dependants start."""

    def test_db_before_app(self):
        """Test a dependency is deployed first."""
        scheduler, manager = make_scheduler()
        order = scheduler.deploy(make_bundle({"app": ["db"], "db": []}))

        assert order == ["db", "app"]
        assert step_names(manager) == [
            ("register_app", "db"),
            ("update_app", "db"),
            ("deploy_app", "db"),
            ("wait_or_raise", "db"),
            ("register_app", "app"),
            ("update_app", "app"),
            ("deploy_app", "app"),
            ("wait_or_raise", "app"),
        ]

    def test_dag_deploys_each_service_once_in_dependency_order(self):
        """Test a DAG deploys each service once after its dependencies."""
        graph = {
            "web": ["api", "cache"],
            "api": ["db", "queue"],
            "worker": ["queue", "db"],
            "cache": [],
            "db": [],
            "queue": ["db"],
        }
        scheduler, manager = make_scheduler()
        order = scheduler.deploy(make_bundle(graph))

        assert sorted(order) == sorted(graph)
        assert len(order) == len(set(order))

        steps = step_names(manager)
        for service, deps in graph.items():
            first_step = steps.index(("register_app", service))
            for dep in deps:
                assert steps.index(("wait_or_raise", dep)) < first_step

    def test_discovery_order_within_a_pass(self):
        """Test services deploy in manifest order within a pass."""
        scheduler, _ = make_scheduler()
        order = scheduler.deploy(make_bundle({"c": ["a"], "a": [], "b": [], "d": ["c"]}))
        assert order == ["a", "b", "c", "d"]

    def test_service_steps_use_spec_values(self):
        """Test each step receives the service's parsed values."""
        scheduler, manager = make_scheduler()
        service = ServiceSpec(
            name="db",
            image="postgres:16",
            environment={"POSTGRES_DB": "app"},
            volumes=["pgdata:/var/lib/postgresql/data"],
        )
        scheduler.deploy(Bundle(services={"db": service}))

        manager.client.register_app.assert_called_once_with("db", True)
        manager.client.update_app.assert_called_once_with("db", **service.update_payload())
        manager.client.deploy_app.assert_called_once_with("db", image_name="postgres:16", dockerfile_lines=None)


class TestStalls:
    """Test cycle and dangling reference detection."""

    def test_cycle_issues_no_calls(self):
        """Test a cycle makes no remote calls."""
        scheduler, manager = make_scheduler()
        with pytest.raises(DependencyResolutionError) as exc_info:
            scheduler.deploy(make_bundle({"x": ["y"], "y": ["x"]}))

        assert sorted(exc_info.value.pending) == ["x", "y"]
        assert "x" in str(exc_info.value) and "y" in str(exc_info.value)
        manager.client.register_app.assert_not_called()

    def test_missing_dependency_after_partial_progress(self):
        """Test a missing dependency stalls after partial progress."""
        scheduler, manager = make_scheduler()
        with pytest.raises(DependencyResolutionError) as exc_info:
            scheduler.deploy(make_bundle({"db": [], "app": ["db", "ghost"], "admin": ["app"]}))

        assert sorted(exc_info.value.pending) == ["admin", "app"]
        assert manager.client.register_app.call_args_list == [call("db", False)]


class TestFailures:
    """Test fail-fast behaviour."""

    def test_build_failure_stops_the_run(self):
        """Test a build failure stops the run."""
        scheduler, manager = make_scheduler()
        manager.waiter.wait_or_raise.side_effect = BuildFailedError("db")

        with pytest.raises(BuildFailedError):
            scheduler.deploy(make_bundle({"db": [], "app": ["db"]}))
        assert manager.client.register_app.call_args_list == [call("db", False)]
        manager.client.delete_app.assert_not_called()

    def test_transient_errors_are_retried_per_step(self):
        """Test transient errors are retried per step."""
        scheduler, manager = make_scheduler()
        manager.client.register_app.side_effect = [TransientNetworkError("reset"), None]

        assert scheduler.deploy(make_bundle({"db": []})) == ["db"]
        assert manager.client.register_app.call_count == 2
        assert manager.waiter.wait_or_raise.call_count == 1
