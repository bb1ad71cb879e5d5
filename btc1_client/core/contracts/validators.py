"""
Валидация конфигурационных файлов клиента по JSON Schema (Draft 2020-12).

Файлы, которые оператор может подложить вместо значений по умолчанию:
- protocol_parameters.json: константы Vault / WeeklyDistribution
- contract_addresses.json: адреса задеплоенных контрактов

Схемы лежат в пакете (schema/ рядом с модулем) и проверяются meta-валидацией
при первой загрузке.
"""

import json
from pathlib import Path
from typing import Any, Final, Iterator, Mapping

import jsonschema
from jsonschema import Draft202012Validator

PACKAGED_SCHEMA_DIR: Final[Path] = Path(__file__).parent / "schema"

PROTOCOL_PARAMETERS_SCHEMA: Final[str] = "protocol_parameters"
CONTRACT_ADDRESSES_SCHEMA: Final[str] = "contract_addresses"


# =============================================================================
# ЗАГРУЗКА СХЕМ
# =============================================================================


class SchemaLoader:
    """Чтение и кэширование схем из каталога (по умолчанию из пакета)."""

    def __init__(self, schema_dir: Path | None = None):
        self._dir = schema_dir or PACKAGED_SCHEMA_DIR
        if not self._dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self._dir}")
        self._cache: dict[str, dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> dict[str, Any]:
        """
        Схема по имени файла без расширения.

        Raises:
            FileNotFoundError: Файла <schema_name>.json нет в каталоге
            ValueError: Файл не проходит meta-валидацию Draft 2020-12
        """
        cached = self._cache.get(schema_name)
        if cached is not None:
            return cached

        path = self._dir / f"{schema_name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"Schema not found: {path}")

        schema = json.loads(path.read_text(encoding="utf-8"))
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"{path.name} is not a valid Draft 2020-12 schema: {e.message}") from e

        self._cache[schema_name] = schema
        return schema


_PACKAGED_SCHEMAS = SchemaLoader()


# =============================================================================
# ВАЛИДАТОРЫ
# =============================================================================


class ContractValidator:
    """Проверка словаря (распарсенного JSON-файла) против одной схемы."""

    schema_name: str = ""

    def __init__(self, schema_name: str | None = None, loader: SchemaLoader | None = None):
        if schema_name is not None:
            self.schema_name = schema_name
        self.schema = (loader or _PACKAGED_SCHEMAS).load_schema(self.schema_name)
        self._validator = Draft202012Validator(self.schema)

    def validate(self, data: Mapping[str, Any]) -> None:
        """
        Raises:
            jsonschema.ValidationError: Первое найденное нарушение
        """
        self._validator.validate(data)

    def is_valid(self, data: Mapping[str, Any]) -> bool:
        return self._validator.is_valid(data)

    def iter_errors(self, data: Mapping[str, Any]) -> Iterator[jsonschema.ValidationError]:
        """Все нарушения (для диагностики конфигурации целиком)."""
        return self._validator.iter_errors(data)


class ProtocolParametersValidator(ContractValidator):
    schema_name = PROTOCOL_PARAMETERS_SCHEMA


class ContractAddressesValidator(ContractValidator):
    schema_name = CONTRACT_ADDRESSES_SCHEMA


def validate_protocol_parameters(data: Mapping[str, Any]) -> None:
    """Файл параметров протокола. Raises jsonschema.ValidationError."""
    ProtocolParametersValidator().validate(data)


def validate_contract_addresses(data: Mapping[str, Any]) -> None:
    """Файл адресов контрактов. Raises jsonschema.ValidationError."""
    ContractAddressesValidator().validate(data)
