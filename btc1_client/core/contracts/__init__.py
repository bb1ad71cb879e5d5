"""
Contract Validation Module

Модуль для валидации JSON конфигурации клиента (параметры протокола,
адреса контрактов) против JSON Schema.
"""

from .validators import (
    CONTRACT_ADDRESSES_SCHEMA,
    PROTOCOL_PARAMETERS_SCHEMA,
    ContractAddressesValidator,
    ContractValidator,
    ProtocolParametersValidator,
    SchemaLoader,
    validate_contract_addresses,
    validate_protocol_parameters,
)

__all__ = [
    # Schema names
    "PROTOCOL_PARAMETERS_SCHEMA",
    "CONTRACT_ADDRESSES_SCHEMA",
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "ProtocolParametersValidator",
    "ContractAddressesValidator",
    # Functions
    "validate_protocol_parameters",
    "validate_contract_addresses",
]
