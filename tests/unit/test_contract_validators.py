"""
Tests for JSON Schema Contract Validators

Проверяет:
- Валидность самих схем (meta-validation)
- Валидация правильных данных
- Детекция нарушений типов, pattern и лишних полей
- Интеграция с ContractAddresses (from_file / from_env)
"""

import json

import pytest
from jsonschema import ValidationError

from btc1_client.config import ContractAddresses
from btc1_client.core.contracts import (
    ContractAddressesValidator,
    ProtocolParametersValidator,
    SchemaLoader,
    validate_contract_addresses,
    validate_protocol_parameters,
)
from btc1_client.core.domain.assets import AssetId


# =============================================================================
# FIXTURES - VALID DATA SAMPLES
# =============================================================================


@pytest.fixture
def valid_protocol_parameters():
    return {
        "min_collateral_ratio": "1.10",
        "distribution_min_ratio": "1.12",
        "stress_redemption_factor": "0.90",
        "dev_fee_mint": "0.01",
        "endowment_fee_mint": "0.001",
        "dev_fee_redeem": "0.001",
        "merkl_fee_per_token": "0.00001",
        "endowment_fee_per_token": "0.0001",
        "dev_fee_per_token": "0.001",
        "reward_tiers": [
            {"min_ratio": "1.12", "reward_per_token": "0.01"},
            {"min_ratio": "1.22", "reward_per_token": "0.02"},
        ],
    }


@pytest.fixture
def valid_contract_addresses():
    return {
        "vault": "0x" + "a" * 40,
        "token": "0x" + "B" * 40,
        "collateral_tokens": {"WBTC": "0x" + "1" * 40},
    }


# =============================================================================
# SCHEMA LOADING
# =============================================================================


class TestSchemaLoader:
    @pytest.mark.parametrize("name", ["protocol_parameters", "contract_addresses"])
    def test_schemas_are_valid(self, name) -> None:
        schema = SchemaLoader().load_schema(name)
        assert schema["type"] == "object"

    def test_schema_is_cached(self) -> None:
        loader = SchemaLoader()
        assert loader.load_schema("contract_addresses") is loader.load_schema("contract_addresses")

    def test_missing_schema(self) -> None:
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("no_such_schema")

    def test_missing_directory(self, tmp_path) -> None:
        with pytest.raises(RuntimeError, match="Schema directory not found"):
            SchemaLoader(tmp_path / "absent")


# =============================================================================
# PROTOCOL PARAMETERS
# =============================================================================


class TestProtocolParametersValidator:
    def test_valid(self, valid_protocol_parameters) -> None:
        validate_protocol_parameters(valid_protocol_parameters)

    def test_empty_is_valid(self) -> None:
        """Все поля опциональны: отсутствующие берутся по умолчанию."""
        assert ProtocolParametersValidator().is_valid({})

    def test_number_instead_of_string(self, valid_protocol_parameters) -> None:
        valid_protocol_parameters["dev_fee_mint"] = 0.01
        with pytest.raises(ValidationError):
            validate_protocol_parameters(valid_protocol_parameters)

    def test_negative_decimal(self, valid_protocol_parameters) -> None:
        valid_protocol_parameters["min_collateral_ratio"] = "-1.10"
        with pytest.raises(ValidationError):
            validate_protocol_parameters(valid_protocol_parameters)

    def test_unknown_field(self, valid_protocol_parameters) -> None:
        valid_protocol_parameters["surprise"] = "1"
        with pytest.raises(ValidationError):
            validate_protocol_parameters(valid_protocol_parameters)

    def test_empty_tier_table(self, valid_protocol_parameters) -> None:
        valid_protocol_parameters["reward_tiers"] = []
        with pytest.raises(ValidationError):
            validate_protocol_parameters(valid_protocol_parameters)

    def test_tier_missing_reward(self, valid_protocol_parameters) -> None:
        valid_protocol_parameters["reward_tiers"] = [{"min_ratio": "1.12"}]
        errors = list(ProtocolParametersValidator().iter_errors(valid_protocol_parameters))
        assert len(errors) == 1
        assert "reward_per_token" in errors[0].message


# =============================================================================
# CONTRACT ADDRESSES
# =============================================================================


class TestContractAddressesValidator:
    def test_valid(self, valid_contract_addresses) -> None:
        validate_contract_addresses(valid_contract_addresses)

    @pytest.mark.parametrize("address", ["0x123", "1" * 42, "0x" + "g" * 40, ""])
    def test_bad_address(self, valid_contract_addresses, address) -> None:
        valid_contract_addresses["vault"] = address
        assert not ContractAddressesValidator().is_valid(valid_contract_addresses)

    def test_unknown_collateral(self, valid_contract_addresses) -> None:
        valid_contract_addresses["collateral_tokens"]["DOGE"] = "0x" + "2" * 40
        with pytest.raises(ValidationError):
            validate_contract_addresses(valid_contract_addresses)


class TestContractAddressesConfig:
    def test_from_file_merges_defaults(self, tmp_path, valid_contract_addresses) -> None:
        path = tmp_path / "addresses.json"
        path.write_text(json.dumps(valid_contract_addresses), encoding="utf-8")

        addresses = ContractAddresses.from_file(path)
        defaults = ContractAddresses()

        assert addresses.vault == "0x" + "a" * 40
        assert addresses.price_oracle == defaults.price_oracle
        assert addresses.collateral_token(AssetId.WBTC) == "0x" + "1" * 40
        assert addresses.collateral_token(AssetId.TBTC) == defaults.collateral_token(AssetId.TBTC)

    def test_from_file_invalid(self, tmp_path) -> None:
        path = tmp_path / "addresses.json"
        path.write_text(json.dumps({"vault": "nope"}), encoding="utf-8")

        with pytest.raises(ValidationError):
            ContractAddresses.from_file(path)

    def test_from_env(self) -> None:
        env = {
            "BTC1_VAULT": "0x" + "c" * 40,
            "BTC1_COLLATERAL_CBBTC": "0x" + "d" * 40,
            "BTC1_UNRELATED": "ignored",
        }
        addresses = ContractAddresses.from_env(env)

        assert addresses.vault == "0x" + "c" * 40
        assert addresses.collateral_token(AssetId.CBBTC) == "0x" + "d" * 40
        assert addresses.token == ContractAddresses().token

    def test_from_env_empty_keeps_defaults(self) -> None:
        assert ContractAddresses.from_env({}) == ContractAddresses()
