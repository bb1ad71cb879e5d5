"""Core: доменные модели, математика протокола, контракты конфигурации, ошибки."""
