from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Protocol

from db import crud
from utils.logger import get_logger

_logger = get_logger(__name__)

AUTO_WALK_IN_KEY = "pos_autoWalkIn"
TAX_RATE_KEY = "pos_defaultTaxRate"


class SettingsStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...


class CrudSettingsStore:
    """Terminal-local key-value store backed by the settings table."""

    async def get(self, key: str) -> Optional[str]:
        return await crud.get_setting(key)

    async def set(self, key: str, value: str) -> None:
        await crud.set_setting(key, value)


@dataclass
class TerminalSettings:
    """
    Settings injected into the core at construction.
    Read once at startup with load(); save() after every change.
    """

    auto_walk_in: bool = True
    default_tax_rate: float = 0.0

    async def load(self, store: SettingsStore) -> "TerminalSettings":
        raw_walk_in = await store.get(AUTO_WALK_IN_KEY)
        raw_tax = await store.get(TAX_RATE_KEY)
        if raw_walk_in is not None:
            self.auto_walk_in = raw_walk_in == "true"
        if raw_tax is not None:
            try:
                rate = float(raw_tax)
            except ValueError:
                rate = math.nan
            if math.isfinite(rate):
                self.default_tax_rate = max(rate, 0.0)
            else:
                _logger.warning(f"Ignoring invalid stored tax rate {raw_tax!r}")
        return self

    async def save(self, store: SettingsStore) -> None:
        await store.set(AUTO_WALK_IN_KEY, "true" if self.auto_walk_in else "false")
        await store.set(TAX_RATE_KEY, repr(float(self.default_tax_rate)))
        _logger.debug(f"Settings saved: {self}")
