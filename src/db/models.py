# provide dataclass models

from dataclasses import dataclass, field
from typing import List, Optional

SERVICE_CATEGORY = "Services"
UNLIMITED_STOCK = 999999


@dataclass(frozen=True)
class Employee:
    uid: str
    pwd: str
    email: str
    anonymous: bool = False


@dataclass(frozen=True)
class CatalogItem:
    id: str
    name: str
    category: str
    price: float
    stock: int
    subcategory: Optional[str] = None  # service type for services
    barcode: Optional[str] = None
    is_active: bool = True
    description: str = ""
    product_number: str = ""

    @property
    def is_service(self) -> bool:
        return self.category == SERVICE_CATEGORY


@dataclass(frozen=True)
class CategoryInfo:
    name: str
    subcategories: List[str] = field(default_factory=list)


@dataclass
class CartLine:
    item: CatalogItem
    quantity: int

    @property
    def line_total(self) -> float:
        return self.item.price * self.quantity


@dataclass(frozen=True)
class CartTotals:
    subtotal: float
    discount: float
    tax: float
    total: float


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone: str = ""
    email: str = ""
    address: str = ""


@dataclass(frozen=True)
class SaleLine:
    product_id: str
    product_name: str
    product_number: str
    quantity: int
    unit_price: float
    total_price: float


@dataclass(frozen=True)
class PendingSale:
    """
    Write-once sale record handed to the ledger.
    The terminal never reads it back.
    """

    items: List[SaleLine]
    subtotal: float
    discount: float
    tax: float
    total: float
    payment_method: str
    customer_id: Optional[str]
    customer_name: str
    employee_id: str
    employee_email: str
    employee_type: str  # "anonymous" or "authenticated"
    created_at: str  # ISO-8601, for range queries
    created_at_ts: int  # epoch ms, for stable sort
    tendered_amount: Optional[float] = None
    change_given: Optional[float] = None
    status: str = "pending"
    source: str = "POS"
    version: str = "1.0"
