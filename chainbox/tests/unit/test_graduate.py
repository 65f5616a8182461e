"""
Unit tests for chain graduation.
"""

import copy

import toml

from chainbox.commands.definitions import ChainDefinition
from chainbox.commands.graduate import graduate


def make_chain(**overrides) -> ChainDefinition:
    definition = ChainDefinition(
        name="devnet",
        image="someone/custom-chaind:latest",
        command="chaind run --debug",
        genesis_file="/tmp/genesis.json",
        auto_data=False,
        dependencies=["ipfs", "keys", "db"],
    )
    for key, value in overrides.items():
        setattr(definition, key, value)
    return definition.resolve(2)


class TestGraduate:
    def test_service_is_pinned_to_release(self):
        service = graduate(make_chain(), version="0.4.2")
        assert service.name == "devnet"
        assert service.image == "chainbox/chaind:0.4"
        assert service.command == "chaind run"
        assert service.auto_data is True
        assert service.dependencies == ["keys"]

    def test_only_major_minor_matter(self):
        assert graduate(make_chain(), "1.7.0").image == graduate(make_chain(), "1.7.9").image

    def test_container_number_carries_over(self):
        service = graduate(make_chain(), "0.4.2")
        assert service.operations.container_number == 2
        assert service.operations.container_name == "chainbox_service_devnet_2"
        assert service.operations.data_container_name == "chainbox_data_devnet_2"

    def test_input_is_not_modified(self):
        chain = make_chain()
        before = copy.deepcopy(chain)
        graduate(chain, "0.4.2")
        assert chain == before


class TestGraduateChain:
    """Tests for ChainManager.graduate_chain."""

    def test_writes_service_definition(self, manager, store, genesis_file, make_ctx):
        manager.new_chain(make_ctx("devnet", genesis_file=genesis_file, quiet=True))
        calls_before = list(manager.runtime.calls)

        service = manager.graduate_chain(make_ctx("devnet", quiet=True))

        assert manager.runtime.calls == calls_before
        data = toml.load(store.service_path("devnet"))
        assert data["service"]["image"] == service.image
        assert data["service"]["auto_data"] is True
        assert data["dependencies"]["services"] == ["keys"]
        assert store.load_service_definition("devnet").command == "chaind run"

    def test_graduate_needs_no_container(self, manager, store, make_ctx):
        store.save_chain_definition(ChainDefinition(name="paper", image="x/y:1"))
        manager.graduate_chain(make_ctx("paper", quiet=True))
        assert store.service_exists("paper")
        assert manager.runtime.calls == []
