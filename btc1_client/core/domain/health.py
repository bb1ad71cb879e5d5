"""
Health — классификация здоровья протокола для отображения

Классификация не участвует в логике транзакций: ограничения
обеспечивает контракт.
"""

from dataclasses import dataclass
from enum import Enum


class HealthStatus(str, Enum):
    """Статус здоровья протокола."""

    NO_SUPPLY = "No Supply"
    NO_DATA = "No Data"
    EXCELLENT = "Excellent"
    GOOD = "Good"
    HEALTHY = "Healthy"
    STRESSED = "Stressed"


class Severity(str, Enum):
    """Уровень серьёзности (для цвета индикатора в UI)."""

    NEUTRAL = "neutral"
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class HealthAssessment:
    """Результат классификации."""

    status: HealthStatus
    severity: Severity
