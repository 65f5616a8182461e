"""
Unit tests for the DependencyResolver.
"""

import pytest

from chainbox.commands.definitions import ServiceDefinition
from chainbox.commands.errors import DependencyError
from chainbox.commands.managers.dependency import DependencyResolver


@pytest.fixture
def resolver(services):
    return DependencyResolver(services)


@pytest.fixture
def extra_services(store):
    for name in ("ipfs", "db"):
        store.save_service_definition(ServiceDefinition(name=name, image=f"x/{name}:1"))


class TestEnsureRunning:
    def test_empty_list_passes(self, resolver, runtime):
        resolver.ensure_running([])
        assert runtime.calls == []

    def test_all_running_passes(self, resolver, start_keys):
        start_keys()
        resolver.ensure_running(["keys"])

    def test_reports_first_missing_dependency(self, resolver, services, extra_services, make_ctx):
        services.start_service(make_ctx(args=["db"]))
        with pytest.raises(DependencyError) as exc_info:
            resolver.ensure_running(["db", "ipfs", "keys"])
        assert exc_info.value.dependency == "ipfs"

    def test_created_but_stopped_is_not_running(self, resolver, services, start_keys, make_ctx):
        start_keys()
        services.kill_service(make_ctx("keys"))
        with pytest.raises(DependencyError):
            resolver.ensure_running(["keys"])

    def test_only_queries(self, resolver, runtime):
        with pytest.raises(DependencyError):
            resolver.ensure_running(["keys", "ipfs"])
        assert runtime.calls == []


class TestTeardown:
    def test_reverse_order(self, resolver, services, extra_services, start_keys, make_ctx):
        start_keys()
        services.start_service(make_ctx(args=["ipfs", "db"]))
        start_calls = len(services.runtime.calls)

        order = resolver.teardown(["keys", "ipfs", "db", "keys"])

        assert order == ["db", "ipfs", "keys"]
        stops = [c[1] for c in services.runtime.calls[start_calls:] if c[0] == "stop"]
        assert stops == [
            "chainbox_service_db_1",
            "chainbox_service_ipfs_1",
            "chainbox_service_keys_1",
        ]

    def test_remove(self, resolver, runtime, start_keys):
        start_keys()
        resolver.teardown(["keys"], remove=True, remove_data=True)
        assert "chainbox_service_keys_1" not in runtime.containers
        assert "chainbox_data_keys_1" not in runtime.containers

    def test_missing_dependencies_are_skipped(self, resolver, runtime):
        assert resolver.teardown(["keys"], remove=True) == ["keys"]
        assert runtime.verbs("stop", "remove") == []
