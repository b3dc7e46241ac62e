"""
Catalog synchronizer: merges the goods and services feeds into one catalog
and derives the category taxonomy shown in the register's side panel.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Callable, Dict, Iterable, List, Optional

from db.feeds import ChannelFeed, Subscription
from db.models import SERVICE_CATEGORY, UNLIMITED_STOCK, CatalogItem, CategoryInfo
from utils.logger import get_logger
from utils.timers import Clock, PeriodicAction

_logger = get_logger(__name__)

ALL_CATEGORY = "All"
PHONE_CATEGORY = "Inventory"
GENERAL_CATEGORY = "General Items"
GENERAL_SERVICE = "General Service"

# safety net against a silently dropped live connection
FALLBACK_REFRESH_SECONDS = 2 * 60 * 60


def _first(record: Dict[str, Any], *keys: str, default=None):
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return default


def _active(record: Dict[str, Any]) -> bool:
    value = record.get("isActive")
    return True if value is None else bool(value)


def _number(record: Dict[str, Any], value: Any, cast=float):
    """Numeric field, or 0 when upstream sent something unparseable."""
    if value is None or value == "":
        return cast(0)
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    if not math.isfinite(number):
        _logger.warning(f"Record {record.get('id')}: bad number {value!r}, using 0")
        return cast(0)
    return cast(number)


def _barcode(record: Dict[str, Any]) -> Optional[str]:
    value = record.get("barcode")
    return str(value) if value else None


def map_good(record: Dict[str, Any]) -> CatalogItem:
    """
    Map an untyped goods record to a CatalogItem.

    A missing category (or one claiming to be a service) is defaulted
    locally: items carrying phone attributes go to "Inventory", everything
    else to "General Items". The default is never written back upstream.
    """
    category = str(_first(record, "categoryName", "category", default="")).strip()
    if not category or category == SERVICE_CATEGORY:
        category = PHONE_CATEGORY if record.get("phoneData") else GENERAL_CATEGORY

    return CatalogItem(
        id=str(record["id"]),
        name=_first(record, "name", default="Unnamed Product"),
        category=category,
        subcategory=_first(record, "brand", "subcategory"),
        price=_number(record, _first(record, "sellingPrice", "sellPrice", "price", default=0)),
        stock=_number(record, record.get("onHand"), int),
        barcode=_barcode(record),
        is_active=_active(record),
        description=_first(
            record, "description", default=f"Product: {record.get('productNumber') or ''}"
        ),
        product_number=record.get("productNumber") or "",
    )


def map_service(record: Dict[str, Any]) -> CatalogItem:
    """
    Map an untyped services record to a CatalogItem.
    Services always sit under the service marker; their type rides in subcategory.
    """
    service_id = str(record["id"])
    return CatalogItem(
        id=service_id,
        name=_first(record, "name", default="Unnamed Service"),
        category=SERVICE_CATEGORY,
        subcategory=_first(record, "typeLabel", "type", default=GENERAL_SERVICE),
        price=_number(record, record.get("price")),
        stock=UNLIMITED_STOCK,
        barcode=_barcode(record),
        is_active=_active(record),
        description=record.get("description") or "",
        product_number=f"SERVICE-{service_id[:8]}",
    )


def build_categories(items: Iterable[CatalogItem]) -> List[CategoryInfo]:
    """Goods taxonomy: "All" first, then categories with their sorted subcategories."""
    category_map: Dict[str, set] = {}
    for item in items:
        if item.is_service:
            continue
        subs = category_map.setdefault(item.category, set())
        if item.subcategory and item.subcategory.strip():
            subs.add(item.subcategory)

    return [CategoryInfo(ALL_CATEGORY, [])] + [
        CategoryInfo(name, sorted(subs)) for name, subs in sorted(category_map.items())
    ]


def build_service_categories(items: Iterable[CatalogItem]) -> List[CategoryInfo]:
    """Service taxonomy: "All" first, then one flat entry per service type."""
    types = {item.subcategory or GENERAL_SERVICE for item in items if item.is_service}
    return [CategoryInfo(ALL_CATEGORY, [])] + [CategoryInfo(t, []) for t in sorted(types)]


def filter_catalog(
    items: Iterable[CatalogItem],
    services: bool = False,
    query: str = "",
    category: str = ALL_CATEGORY,
    subcategory: Optional[str] = None,
) -> List[CatalogItem]:
    """
    Items visible in the register grid.
    Rules:
    - services=True shows only services, otherwise only goods
    - query matches name, description or id, case-insensitive
    - category filters goods by category and services by service type
    - subcategory only applies to goods
    - inactive items are never shown
    """
    result = [item for item in items if item.is_service == services]

    needle = query.strip().lower()
    if needle:
        result = [
            item
            for item in result
            if needle in item.name.lower()
            or needle in item.description.lower()
            or needle in item.id.lower()
        ]

    if category != ALL_CATEGORY:
        if services:
            result = [item for item in result if item.subcategory == category]
        else:
            result = [item for item in result if item.category == category]

    if subcategory and not services:
        result = [item for item in result if item.subcategory == subcategory]

    return [item for item in result if item.is_active]


def find_by_barcode(items: Iterable[CatalogItem], code: str) -> Optional[CatalogItem]:
    """Exact, case-sensitive match of the trimmed barcode. No partial matching."""
    for item in items:
        if item.barcode and item.barcode.strip() == code:
            return item
    return None


class CatalogSynchronizer:
    """
    Keeps one merged catalog (goods then services, each in feed order) in
    step with two independently updating feeds.

    on_catalog_changed is withheld until both feeds have delivered at least
    one snapshot, an empty one included. After that every snapshot from
    either feed produces exactly one notification with the full merged list.
    """

    def __init__(
        self,
        goods: ChannelFeed,
        services: ChannelFeed,
        on_catalog_changed: Callable[[List[CatalogItem]], Any],
        clock: Optional[Clock] = None,
        refresh_interval: float = FALLBACK_REFRESH_SECONDS,
        on_error: Optional[Callable[[str], Any]] = None,
    ):
        self._goods_feed = goods
        self._services_feed = services
        self._on_catalog_changed = on_catalog_changed
        self._on_error = on_error

        self._goods: List[CatalogItem] = []
        self._services: List[CatalogItem] = []
        self._goods_ready = False
        self._services_ready = False

        self.items: List[CatalogItem] = []
        self.categories: List[CategoryInfo] = [CategoryInfo(ALL_CATEGORY, [])]
        self.service_categories: List[CategoryInfo] = [CategoryInfo(ALL_CATEGORY, [])]

        self._subscriptions: List[Subscription] = []
        self._fallback = (
            PeriodicAction(clock, refresh_interval, self._schedule_refresh)
            if clock is not None
            else None
        )
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def ready(self) -> bool:
        return self._goods_ready and self._services_ready

    def start(self) -> None:
        _logger.info("Setting up live listeners for products and services...")
        self._subscriptions = [
            self._goods_feed.subscribe(self._handle_goods, self._goods_error),
            self._services_feed.subscribe(self._handle_services, self._services_error),
        ]
        if self._fallback is not None:
            self._fallback.start()

    def stop(self) -> None:
        """Release both feed subscriptions and any pending refresh."""
        _logger.info("Cleaning up catalog listeners...")
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []
        if self._fallback is not None:
            self._fallback.stop()
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = None

    async def refresh(self) -> None:
        """
        One-shot re-read of both feeds, fed through the same mapping and
        merge as live snapshots. A failing source keeps its last known items.
        """
        _logger.info("Fallback catalog refresh...")
        goods, services = await asyncio.gather(
            self._goods_feed.fetch(), self._services_feed.fetch(), return_exceptions=True
        )
        if isinstance(goods, Exception):
            self._goods_error(goods)
        else:
            self._goods = self._map_records("products", goods, map_good)
            self._goods_ready = True
        if isinstance(services, Exception):
            self._services_error(services)
        else:
            self._services = self._map_records("services", services, map_service)
            self._services_ready = True
        self._merge_and_notify()

    def _schedule_refresh(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.get_running_loop().create_task(self.refresh())

    def _handle_goods(self, records: List[Dict[str, Any]]) -> None:
        self._goods = self._map_records("products", records, map_good)
        self._goods_ready = True
        self._merge_and_notify()

    def _handle_services(self, records: List[Dict[str, Any]]) -> None:
        self._services = self._map_records("services", records, map_service)
        self._services_ready = True
        self._merge_and_notify()

    def _map_records(self, source: str, records, mapper) -> List[CatalogItem]:
        items = []
        for record in records:
            try:
                items.append(mapper(record))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                self._report_error(source, e)
        return items

    def _goods_error(self, error: Exception) -> None:
        self._report_error("products", error)

    def _services_error(self, error: Exception) -> None:
        self._report_error("services", error)

    def _report_error(self, source: str, error: Exception) -> None:
        _logger.error(f"Error in {source} listener: {error}")
        if self._on_error is not None:
            self._on_error(f"Could not refresh {source}; showing last known items.")

    def _merge_and_notify(self) -> None:
        if not self.ready:
            return
        self.items = self._goods + self._services
        self.categories = build_categories(self.items)
        self.service_categories = build_service_categories(self.items)
        _logger.info(
            f"Catalog updated: {len(self._goods)} products + {len(self._services)} services"
        )
        self._on_catalog_changed(list(self.items))
