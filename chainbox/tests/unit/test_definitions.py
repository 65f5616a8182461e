"""
Unit tests for chain and service definitions and the DefinitionStore.
"""

import pytest
import toml

from chainbox.commands.definitions import (
    ChainDefinition,
    DefinitionStore,
    ServiceDefinition,
    default_chain_definition,
    release_image,
    unique_in_order,
    version_tag,
)
from chainbox.commands.errors import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


def write_chain(store: DefinitionStore, name: str, **overrides) -> ChainDefinition:
    definition = default_chain_definition(name, "/tmp/genesis.json", "0.4.2")
    for key, value in overrides.items():
        setattr(definition, key, value)
    store.save_chain_definition(definition)
    return definition


class TestReleaseImage:
    def test_version_tag_keeps_major_minor(self):
        assert version_tag("0.4.2") == "0.4"
        assert version_tag("1.12.0-rc1") == "1.12"

    def test_release_image(self):
        assert release_image("0.4.2") == "chainbox/chaind:0.4"
        assert release_image("2.1.0", "keys") == "chainbox/keys:2.1"


def test_unique_in_order():
    assert unique_in_order(["keys", "ipfs", "keys", "", "db"]) == ["keys", "ipfs", "db"]
    assert unique_in_order(None) == []


class TestChainDefinitionLoad:
    """Tests for load_chain_definition."""

    def test_load_resolves_container_names(self, store):
        write_chain(store, "devnet")
        definition = store.load_chain_definition("devnet", container_number=2)
        assert definition.name == "devnet"
        assert definition.image == "chainbox/chaind:0.4"
        assert definition.dependencies == ["keys"]
        assert definition.operations.container_number == 2
        assert definition.operations.container_name == "chainbox_chain_devnet_2"
        assert definition.operations.data_container_name == "chainbox_data_devnet_2"

    def test_no_data_container_without_auto_data(self, store):
        write_chain(store, "devnet", auto_data=False)
        definition = store.load_chain_definition("devnet")
        assert definition.operations.data_container_name == ""

    def test_missing_definition(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.load_chain_definition("nope")
        assert exc_info.value.name == "nope"

    def test_invalid_number(self, store):
        write_chain(store, "devnet")
        with pytest.raises(ValidationError):
            store.load_chain_definition("devnet", container_number=0)

    def test_cached_load_ignores_edits_until_refresh(self, store):
        write_chain(store, "devnet")
        store.load_chain_definition("devnet")

        path = store.chain_path("devnet")
        data = toml.load(path)
        data["service"]["image"] = "custom/chaind:dev"
        path.write_text(toml.dumps(data))

        assert store.load_chain_definition("devnet").image == "chainbox/chaind:0.4"
        assert (
            store.load_chain_definition("devnet", refresh=True).image
            == "custom/chaind:dev"
        )

    def test_loads_return_independent_copies(self, store):
        write_chain(store, "devnet")
        first = store.load_chain_definition("devnet", container_number=1)
        second = store.load_chain_definition("devnet", container_number=2)
        first.dependencies.append("extra")
        assert first.operations.container_number == 1
        assert second.dependencies == ["keys"]

    def test_deleted_file_is_not_served_from_cache(self, store):
        write_chain(store, "devnet")
        store.load_chain_definition("devnet")
        store.chain_path("devnet").unlink()
        with pytest.raises(NotFoundError):
            store.load_chain_definition("devnet")

    def test_malformed_file(self, store):
        store.chains_dir.mkdir(parents=True)
        store.chain_path("broken").write_text("name = [unterminated")
        with pytest.raises(ConfigurationError):
            store.load_chain_definition("broken")

    def test_name_defaults_to_file_stem(self, store):
        store.chains_dir.mkdir(parents=True)
        store.chain_path("plain").write_text('[service]\nimage = "x/y:1"\n')
        definition = store.load_chain_definition("plain")
        assert definition.name == "plain"
        assert definition.auto_data is True

    def test_duplicate_dependencies_are_dropped(self, store):
        write_chain(store, "devnet", dependencies=["keys", "ipfs", "keys"])
        assert store.load_chain_definition("devnet", refresh=True).dependencies == [
            "keys",
            "ipfs",
        ]


class TestChainDefinitionPersistence:
    def test_operations_are_not_persisted(self, store):
        definition = default_chain_definition("devnet").resolve(3)
        path = store.save_chain_definition(definition)
        data = toml.load(path)
        assert "operations" not in data
        assert "chainbox_chain_devnet_3" not in path.read_text()

    def test_round_trip_through_dict(self):
        definition = ChainDefinition(
            name="devnet",
            image="x/y:1",
            command="run",
            genesis_file="/g.json",
            auto_data=False,
            dependencies=["keys"],
        )
        assert ChainDefinition.from_dict(definition.to_dict()) == definition

    def test_list_known_chains(self, store):
        assert store.list_known_chains() == []
        write_chain(store, "zeta")
        write_chain(store, "alpha")
        (store.chains_dir / "notes.txt").write_text("ignored")
        assert store.list_known_chains() == ["alpha", "zeta"]

    def test_remove_chain_definition(self, store):
        write_chain(store, "devnet")
        assert store.remove_chain_definition("devnet") is True
        assert store.remove_chain_definition("devnet") is False
        assert not store.chain_exists("devnet")


class TestRenameChainDefinition:
    def test_rename_moves_file_and_name(self, store):
        write_chain(store, "old")
        renamed = store.rename_chain_definition("old", "new")
        assert renamed.name == "new"
        assert renamed.operations.container_name == "chainbox_chain_new_1"
        assert not store.chain_exists("old")
        assert toml.load(store.chain_path("new"))["name"] == "new"

    def test_rename_onto_existing_definition(self, store):
        write_chain(store, "old")
        write_chain(store, "new")
        with pytest.raises(ConflictError):
            store.rename_chain_definition("old", "new")
        assert store.chain_exists("old")

    def test_rename_missing(self, store):
        with pytest.raises(NotFoundError):
            store.rename_chain_definition("missing", "new")


class TestServiceDefinitions:
    def test_keys_definition_is_created_on_first_load(self, store):
        assert not store.service_exists("keys")
        definition = store.load_service_definition("keys")
        assert store.service_exists("keys")
        assert definition.image == "chainbox/keys:0.4"
        assert definition.operations.container_name == "chainbox_service_keys_1"

    def test_unknown_service(self, store):
        with pytest.raises(NotFoundError):
            store.load_service_definition("ipfs")

    def test_environment_round_trip(self, store):
        store.save_service_definition(
            ServiceDefinition(name="ipfs", image="ipfs/kubo:v0.20", environment={"A": "1"})
        )
        loaded = store.load_service_definition("ipfs", refresh=True)
        assert loaded.environment == {"A": "1"}
        assert loaded.auto_data is False
        assert loaded.operations.data_container_name == ""
        assert store.list_known_services() == ["ipfs"]
