# src/db/crud.py
from __future__ import annotations

import json
import random
import string
from datetime import datetime
from typing import Any, Dict, List, Optional

from db import models
from db.database import connect

CATALOG_TABLES = ("products", "services")

_ID_ALPHABET = string.ascii_letters + string.digits


def _generate_id(length: int = 20) -> str:
    """Random document id in the style of the upstream store's auto ids."""
    return "".join(random.choices(_ID_ALPHABET, k=length))


# ---------------------------
# Auth
# ---------------------------


async def login(uid: str, pwd: str) -> Optional[models.Employee]:
    """Return Employee if uid/pwd match; otherwise None."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT uid, pwd, email, anonymous FROM employees WHERE uid = ? AND pwd = ?;",
            (uid, pwd),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return models.Employee(
        uid=row[0], pwd=row[1], email=row[2] or "", anonymous=bool(row[3])
    )


# ---------------------------
# Catalog (read only)
# ---------------------------


async def list_collection(table: str) -> List[Dict[str, Any]]:
    """
    Full snapshot of a catalog table as untyped records, ordered by name.
    Each record carries its document id under "id".
    """
    if table not in CATALOG_TABLES:
        raise ValueError(f"Unknown catalog collection: {table}")
    async with connect() as conn:
        cur = await conn.execute(f"SELECT * FROM {table} ORDER BY name, id;")
        rows = await cur.fetchall()
        await cur.close()
    return [dict(row) for row in rows]


# ---------------------------
# Customers (create + narrow search only)
# ---------------------------


async def create_customer(
    name: str, phone: str, email: str = "", address: str = ""
) -> str:
    """Insert a customer record and return its generated id."""
    customer_id = _generate_id()
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO customers(id, name, phoneNumber, email, address, note,
                                  createdAt, totalPurchases, totalSpent, lastPurchase)
            VALUES (?, ?, ?, ?, ?, '', ?, 0, 0, NULL);
            """,
            (customer_id, name, phone, email, address, datetime.now().isoformat()),
        )
        await conn.commit()
    return customer_id


async def search_customers(query: str, limit: int = 20) -> List[models.Customer]:
    """
    Case-insensitive match on name or phone number.
    Only id, name and phone leave this function; email and address stay private.
    """
    like = f"%{query.strip().lower()}%"
    async with connect() as conn:
        cur = await conn.execute(
            """
            SELECT id, name, phoneNumber
            FROM customers
            WHERE LOWER(name) LIKE ? OR phoneNumber LIKE ?
            ORDER BY name
            LIMIT ?;
            """,
            (like, like, limit),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [models.Customer(id=row[0], name=row[1], phone=row[2]) for row in rows]


# ---------------------------
# Ledger (create only)
# ---------------------------


async def create_pending_sale(sale: models.PendingSale) -> str:
    """
    Append a pending sale and return its generated id.
    There is deliberately no read/update/delete counterpart in this module.
    """
    sale_id = _generate_id()
    items = json.dumps(
        [
            {
                "productId": line.product_id,
                "productName": line.product_name,
                "productNumber": line.product_number,
                "quantity": line.quantity,
                "unitPrice": line.unit_price,
                "totalPrice": line.total_price,
            }
            for line in sale.items
        ]
    )
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO pending_transactions(
                id, employeeId, employeeEmail, employeeType, customerId, customerName,
                items, subtotal, tax, discount, total, paymentMethod,
                tenderedAmount, changeGiven, status, isPending, isFinalized,
                createdAt, createdAtTimestamp, source, version)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, 0, ?, ?, ?, ?);
            """,
            (
                sale_id,
                sale.employee_id,
                sale.employee_email,
                sale.employee_type,
                sale.customer_id,
                sale.customer_name,
                items,
                sale.subtotal,
                sale.tax,
                sale.discount,
                sale.total,
                sale.payment_method,
                sale.tendered_amount,
                sale.change_given,
                sale.status,
                sale.created_at,
                sale.created_at_ts,
                sale.source,
                sale.version,
            ),
        )
        await conn.commit()
    return sale_id


# ---------------------------
# Terminal settings (key-value)
# ---------------------------


async def get_setting(key: str) -> Optional[str]:
    async with connect() as conn:
        cur = await conn.execute("SELECT value FROM settings WHERE key = ?;", (key,))
        row = await cur.fetchone()
        await cur.close()
    return row[0] if row else None


async def set_setting(key: str, value: str) -> None:
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO settings(key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value;
            """,
            (key, value),
        )
        await conn.commit()
