from __future__ import annotations

import time
from typing import List, Optional

from db import crud
from db.models import Customer
from utils.errors import ConnectivityError, ValidationError
from utils.logger import get_logger

_logger = get_logger(__name__)

WALK_IN_PREFIX = "walk-in"
TEMP_PREFIX = "temp-"
MIN_SEARCH_LENGTH = 2

# attached automatically when auto walk-in mode is on
AUTO_WALK_IN = Customer(id=WALK_IN_PREFIX, name="Walk-in Customer")


def _epoch_ms(now: Optional[float]) -> int:
    return int((time.time() if now is None else now) * 1000)


def walk_in_customer(name: Optional[str] = None, now: Optional[float] = None) -> Customer:
    """Synthetic walk-in reference; not backed by a directory record."""
    name = (name or "").strip()
    return Customer(
        id=f"{WALK_IN_PREFIX}-{_epoch_ms(now)}",
        name=f"Walk-In - {name}" if name else "Walk-In Customer",
        phone="0000000000",
    )


def is_walk_in(customer: Optional[Customer]) -> bool:
    return customer is not None and customer.id.startswith(WALK_IN_PREFIX)


class CustomerDirectory:
    """
    The terminal's narrow view of the customer directory:
    create, and search returning name and phone only. No listing.
    """

    async def create(
        self, name: str, phone: str, email: str = "", address: str = ""
    ) -> Customer:
        name, phone = name.strip(), phone.strip()
        if not name or not phone:
            raise ValidationError("Name and phone are required.")
        email, address = email.strip(), address.strip()

        _logger.info(f"Creating customer: {name}")
        try:
            customer_id = await crud.create_customer(name, phone, email, address)
        except Exception as e:
            _logger.error(f"Error creating customer: {e}")
            raise ConnectivityError(f"Could not create customer: {e}") from e
        _logger.info(f"Customer created: {customer_id}")
        return Customer(id=customer_id, name=name, phone=phone, email=email, address=address)

    async def create_or_keep_local(
        self, name: str, phone: str, email: str = "", address: str = "", now=None
    ) -> tuple[Customer, bool]:
        """
        Create upstream; on a connectivity failure keep the customer locally
        under a temp id so the sale can go on. Returns (customer, created).
        """
        try:
            return await self.create(name, phone, email, address), True
        except ConnectivityError:
            local = Customer(
                id=f"{TEMP_PREFIX}{_epoch_ms(now)}",
                name=name.strip(),
                phone=phone.strip(),
                email=email.strip(),
                address=address.strip(),
            )
            _logger.warning(f"Customer kept locally despite directory error: {local.id}")
            return local, False

    async def search(self, query: str) -> List[Customer]:
        if not query or len(query.strip()) < MIN_SEARCH_LENGTH:
            return []
        try:
            results = await crud.search_customers(query)
        except Exception as e:
            _logger.error(f"Error searching customers: {e}")
            raise ConnectivityError("Customer search is unavailable.") from e
        _logger.debug(f"Found {len(results)} customers for {query!r}")
        return results
