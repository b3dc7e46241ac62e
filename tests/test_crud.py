import json
import os
import sys
import tempfile
import unittest

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import crud  # noqa: E402
from db import database as db_database  # noqa: E402
from db.models import PendingSale, SaleLine  # noqa: E402


class CrudTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Point the DB to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_PATH = self.db_path
        db_database._initialized = False

    async def asyncSetUp(self):
        # Touch initialization by opening a connection
        async with db_database.connect() as conn:
            cur = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table';"
            )
            tables = {row[0] for row in await cur.fetchall()}
            await cur.close()
        self.assertIn("pending_transactions", tables)

    def tearDown(self):
        self.temp_dir.cleanup()

    async def _fetch_all(self, sql, params=()):
        async with db_database.connect() as conn:
            cur = await conn.execute(sql, params)
            rows = await cur.fetchall()
            await cur.close()
        return rows

    # ---------- Bootstrap ----------

    async def test_schema_versioned_and_seeded_once(self):
        rows = await self._fetch_all("PRAGMA user_version;")
        self.assertEqual(rows[0][0], db_database.SCHEMA_VERSION)

        await crud.create_customer("Dana", "555")
        # a fresh process reconnects to the same file
        db_database._initialized = False
        products = await crud.list_collection("products")
        self.assertEqual(len(products), 7)
        self.assertEqual(len(await crud.search_customers("dana")), 1)

    # ---------- Auth ----------

    async def test_login(self):
        employee = await crud.login("cashier1", "pw")
        self.assertIsNotNone(employee)
        self.assertEqual(employee.email, "cashier1@example.com")
        self.assertFalse(employee.anonymous)

        self.assertIsNone(await crud.login("cashier1", "wrong"))
        self.assertIsNone(await crud.login("nobody", "pw"))

        kiosk = await crud.login("kiosk", "kiosk")
        self.assertTrue(kiosk.anonymous)
        self.assertEqual(kiosk.email, "")

    # ---------- Catalog ----------

    async def test_list_collection_snapshot(self):
        products = await crud.list_collection("products")
        names = [p["name"] for p in products]
        self.assertEqual(names, sorted(names))
        self.assertEqual(len(products), 7)

        cola = next(p for p in products if p["id"] == "p-cola")
        self.assertEqual(cola["sellingPrice"], 1.25)
        self.assertEqual(cola["barcode"], "012000001291")

        services = await crud.list_collection("services")
        self.assertEqual({s["id"] for s in services}, {"s-refill-30", "s-screen", "s-setup"})

    async def test_list_collection_rejects_other_tables(self):
        with self.assertRaises(ValueError):
            await crud.list_collection("customers")
        with self.assertRaises(ValueError):
            await crud.list_collection("pending_transactions")

    # ---------- Customers ----------

    async def test_create_and_search_customers(self):
        cid = await crud.create_customer(
            "Dana Smith", "555-0101", "dana@example.com", "1 Elm St"
        )
        self.assertEqual(len(cid), 20)
        await crud.create_customer("Eli Jones", "555-0199")

        by_name = await crud.search_customers("dana")
        self.assertEqual([c.id for c in by_name], [cid])
        self.assertEqual(by_name[0].phone, "555-0101")
        # email and address never leave the store through search
        self.assertEqual(by_name[0].email, "")
        self.assertEqual(by_name[0].address, "")

        by_phone = await crud.search_customers("555-01")
        self.assertEqual([c.name for c in by_phone], ["Dana Smith", "Eli Jones"])

        self.assertEqual(await crud.search_customers("zzz"), [])

    async def test_search_customers_limit(self):
        for i in range(5):
            await crud.create_customer(f"Test {i}", f"555-100{i}")
        self.assertEqual(len(await crud.search_customers("test", limit=3)), 3)

    # ---------- Ledger ----------

    async def test_create_pending_sale(self):
        sale = PendingSale(
            items=[
                SaleLine("p-cola", "Cola 12oz", "BEV-001", 2, 1.25, 2.5),
                SaleLine("s-setup", "Device Setup", "SERVICE-s-setup", 1, 15.0, 15.0),
            ],
            subtotal=17.5,
            discount=0.0,
            tax=0.0,
            total=17.5,
            payment_method="cash",
            customer_id=None,
            customer_name="Walk-in Customer",
            employee_id="cashier1",
            employee_email="cashier1@example.com",
            employee_type="authenticated",
            created_at="2024-05-01T12:00:00+00:00",
            created_at_ts=1714564800000,
            tendered_amount=20.0,
            change_given=2.5,
        )
        sale_id = await crud.create_pending_sale(sale)
        second_id = await crud.create_pending_sale(sale)
        self.assertNotEqual(sale_id, second_id)

        rows = await self._fetch_all(
            "SELECT * FROM pending_transactions WHERE id = ?;", (sale_id,)
        )
        self.assertEqual(len(rows), 1)
        row = dict(rows[0])
        self.assertEqual(row["status"], "pending")
        self.assertEqual(row["isPending"], 1)
        self.assertEqual(row["isFinalized"], 0)
        self.assertEqual(row["source"], "POS")
        self.assertEqual(row["version"], "1.0")
        self.assertIsNone(row["customerId"])
        self.assertEqual(row["tenderedAmount"], 20.0)
        self.assertEqual(row["createdAtTimestamp"], 1714564800000)

        items = json.loads(row["items"])
        self.assertEqual(items[0]["productId"], "p-cola")
        self.assertEqual(items[0]["quantity"], 2)
        self.assertEqual(items[1]["totalPrice"], 15.0)

    # ---------- Settings ----------

    async def test_settings_upsert(self):
        self.assertIsNone(await crud.get_setting("pos_autoWalkIn"))
        await crud.set_setting("pos_autoWalkIn", "true")
        self.assertEqual(await crud.get_setting("pos_autoWalkIn"), "true")
        await crud.set_setting("pos_autoWalkIn", "false")
        self.assertEqual(await crud.get_setting("pos_autoWalkIn"), "false")

        rows = await self._fetch_all("SELECT COUNT(*) FROM settings;")
        self.assertEqual(rows[0][0], 1)


if __name__ == "__main__":
    unittest.main()
