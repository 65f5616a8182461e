"""
Unit tests for container naming.
"""

import pytest

from chainbox.commands.errors import ValidationError
from chainbox.commands.naming import (
    chain_container_name,
    container_name,
    container_number_of,
    data_container_name,
    data_container_name_for,
    kind_prefix,
    resolve,
    service_container_name,
    short_name,
    validate_chain_name,
    validate_container_number,
)


class TestResolve:
    """Tests for resolved container names."""

    def test_resolve_returns_chain_and_data_names(self):
        assert resolve("devnet", 3) == (
            "chainbox_chain_devnet_3",
            "chainbox_data_devnet_3",
        )

    def test_missing_number_defaults_to_one(self):
        assert resolve("devnet") == resolve("devnet", 1)
        assert chain_container_name("devnet", None) == "chainbox_chain_devnet_1"

    def test_resolve_is_deterministic(self):
        assert resolve("a_b", 2) == resolve("a_b", 2)

    def test_distinct_inputs_give_distinct_names(self):
        names = {
            chain_container_name("a", 1),
            chain_container_name("a", 2),
            chain_container_name("b", 1),
            data_container_name("a", 1),
            service_container_name("a", 1),
        }
        assert len(names) == 5

    @pytest.mark.parametrize("number", [0, -1, 1.5, "2", True])
    def test_invalid_numbers_are_rejected(self, number):
        with pytest.raises(ValidationError) as exc_info:
            resolve("devnet", number)
        assert exc_info.value.field == "container_number"

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValidationError):
            container_name("volume", "devnet", 1)


class TestShortName:
    """Tests for parsing resolved names back to display names."""

    @pytest.mark.parametrize("name", ["devnet", "my_chain", "a_1_b", "x.y-z"])
    @pytest.mark.parametrize("number", [1, 7, 42])
    def test_round_trip(self, name, number):
        container, data = resolve(name, number)
        assert short_name(container) == name
        assert short_name(data) == name
        assert container_number_of(container) == number

    def test_leading_slash_from_inspect_is_ignored(self):
        assert short_name("/chainbox_chain_devnet_1") == "devnet"

    @pytest.mark.parametrize(
        "foreign",
        ["postgres", "chainbox_chain_devnet", "other_chain_devnet_1", "chainbox_vm_x_1"],
    )
    def test_foreign_names_have_no_short_name(self, foreign):
        assert short_name(foreign) == ""

    def test_data_container_name_for(self):
        assert data_container_name_for("chainbox_chain_my_chain_2") == (
            "chainbox_data_my_chain_2"
        )

    def test_data_container_name_for_foreign_name(self):
        with pytest.raises(ValidationError):
            data_container_name_for("postgres")


class TestValidation:
    """Tests for name and number validation."""

    @pytest.mark.parametrize("name", ["devnet", "Chain1", "a_b", "a.b-c", "1chain"])
    def test_valid_names(self, name):
        assert validate_chain_name(name) == name

    @pytest.mark.parametrize("name", ["", "-x", "_x", "a b", "a/b", "a:b", None])
    def test_invalid_names(self, name):
        with pytest.raises(ValidationError):
            validate_chain_name(name)

    def test_field_is_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_chain_name("a b", field="new_name")
        assert exc_info.value.field == "new_name"

    def test_validate_container_number(self):
        assert validate_container_number(None) == 1
        assert validate_container_number(5) == 5


def test_kind_prefix():
    assert kind_prefix("chain") == "chainbox_chain_"
    assert kind_prefix("chain", "dev") == "chainbox_chain_dev"
