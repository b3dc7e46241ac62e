"""
Barcode scan decoder.

A hand-held scanner behaves like a keyboard that types a whole code and
presses Enter within a few milliseconds. The decoder buffers printable keys
and treats Enter as the end of a code; if the buffer goes quiet for longer
than the expiry window it is dropped.

Keys typed into any text field other than the search box are never touched.
In the search box ordinary typing passes through; once keys start arriving
faster than a person types, the box loses focus and the rest of the burst
is captured as scan input.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from core.catalog import find_by_barcode
from db.models import CatalogItem
from utils.logger import get_logger
from utils.timers import Clock, DeferredAction

_logger = get_logger(__name__)

SCAN_EXPIRY_SECONDS = 0.2
# gap between keys below which input in the search box counts as a scanner burst
BURST_GAP_SECONDS = 0.05


class KeyTarget(enum.Enum):
    NONE = "none"  # no text field focused
    SEARCH = "search"  # the register's search box
    TEXT = "text"  # any other text field


@dataclass(frozen=True)
class KeyPress:
    key: str
    character: Optional[str] = None
    ctrl: bool = False
    alt: bool = False
    meta: bool = False
    target: KeyTarget = KeyTarget.NONE

    @property
    def printable(self) -> bool:
        return (
            self.character is not None
            and len(self.character) == 1
            and self.character.isprintable()
            and not (self.ctrl or self.alt or self.meta)
        )


@dataclass(frozen=True)
class KeyDecision:
    consumed: bool = False  # keep the key away from the focused widget
    blur_search: bool = False  # move focus off the search box


PASS = KeyDecision()


class BarcodeScanDecoder:
    def __init__(
        self,
        clock: Clock,
        catalog: Callable[[], Iterable[CatalogItem]],
        on_item: Callable[[CatalogItem], None],
        on_not_found: Optional[Callable[[str], None]] = None,
        expiry: float = SCAN_EXPIRY_SECONDS,
        burst_gap: float = BURST_GAP_SECONDS,
    ):
        self._clock = clock
        self._catalog = catalog
        self._on_item = on_item
        self._on_not_found = on_not_found
        self._burst_gap = burst_gap
        self._expiry = DeferredAction(clock, expiry, self._expire)

        self.buffer = ""
        self._burst = False  # set once a search-box burst has been detected
        self._last_key_at: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._expiry.pending

    def reset(self) -> None:
        self._expiry.cancel()
        self.buffer = ""
        self._burst = False
        self._last_key_at = None

    def feed(self, press: KeyPress) -> KeyDecision:
        """Classify one key press. Never raises."""
        try:
            return self._feed(press)
        except Exception as e:
            _logger.error(f"Barcode decoder error, buffer reset: {e}")
            self.reset()
            return PASS

    def _feed(self, press: KeyPress) -> KeyDecision:
        if press.target is KeyTarget.TEXT:
            return PASS

        if press.key == "enter":
            if not self.buffer.strip():
                return PASS
            if press.target is KeyTarget.SEARCH and not self._burst:
                # plain typing in the search box ended with Enter
                self.reset()
                return PASS
            code = self.buffer.strip()
            self.reset()
            self._resolve(code)
            return KeyDecision(consumed=True)

        if not press.printable:
            return PASS

        now = self._clock.now()
        rapid = (
            self._last_key_at is not None
            and self.buffer != ""
            and now - self._last_key_at <= self._burst_gap
        )
        self._last_key_at = now
        self.buffer += press.character
        self._expiry.arm()

        if press.target is KeyTarget.SEARCH and not self._burst:
            if not rapid:
                # could still be a person typing; let the box have it
                return PASS
            self._burst = True
            return KeyDecision(consumed=True, blur_search=True)
        return KeyDecision(consumed=True)

    def _expire(self) -> None:
        if self.buffer:
            _logger.debug(f"Barcode buffer timeout, dropping {self.buffer!r}")
        self.buffer = ""
        self._burst = False
        self._last_key_at = None

    def _resolve(self, code: str) -> None:
        _logger.info(f"Searching for barcode: {code}")
        item = find_by_barcode(self._catalog(), code)
        if item is not None:
            _logger.info(f"Barcode found: {code} -> {item.name}")
            self._on_item(item)
        else:
            _logger.info(f"Barcode not found: {code}")
            if self._on_not_found is not None:
                self._on_not_found(code)
