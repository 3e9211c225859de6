"""Error types for expiring-map."""

from __future__ import annotations


class InvalidConfigurationError(ValueError):
    def __init__(self, option: str, message: str) -> None:
        super().__init__(message)
        self.option = option
