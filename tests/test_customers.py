import asyncio
import os
import sys
import tempfile
import unittest
from unittest import mock

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from core.customers import (  # noqa: E402
    CustomerDirectory,
    is_walk_in,
    walk_in_customer,
)
from core.identity import Identity, IdentityProvider, wait_for_identity  # noqa: E402
from db import crud  # noqa: E402
from db import database as db_database  # noqa: E402
from utils.errors import ConnectivityError, ValidationError  # noqa: E402


class WalkInTestCase(unittest.TestCase):
    def test_named_and_anonymous(self):
        named = walk_in_customer("  Sam ", now=1.5)
        self.assertEqual(named.id, "walk-in-1500")
        self.assertEqual(named.name, "Walk-In - Sam")
        self.assertEqual(named.phone, "0000000000")
        self.assertEqual(walk_in_customer(now=1).name, "Walk-In Customer")
        self.assertTrue(is_walk_in(named))
        self.assertFalse(is_walk_in(None))


class DirectoryTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database._initialized = False
        self.directory = CustomerDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    async def test_create_then_search(self):
        created = await self.directory.create(" Dana ", " 555-0101 ", "d@example.com")
        self.assertEqual(created.name, "Dana")
        found = await self.directory.search("dan")
        self.assertEqual([c.id for c in found], [created.id])

    async def test_create_requires_name_and_phone(self):
        with self.assertRaises(ValidationError):
            await self.directory.create("Dana", "  ")
        with self.assertRaises(ValidationError):
            await self.directory.create("", "555")

    async def test_short_query_returns_nothing(self):
        await self.directory.create("Dana", "555")
        self.assertEqual(await self.directory.search("d"), [])
        self.assertEqual(await self.directory.search(""), [])

    async def test_store_failures(self):
        with mock.patch.object(crud, "create_customer", side_effect=RuntimeError("offline")):
            with self.assertRaises(ConnectivityError):
                await self.directory.create("Dana", "555")
            customer, created = await self.directory.create_or_keep_local(
                "Dana", "555", now=2.0
            )
        self.assertFalse(created)
        self.assertEqual(customer.id, "temp-2000")
        self.assertEqual(customer.name, "Dana")

        with mock.patch.object(crud, "search_customers", side_effect=RuntimeError("offline")):
            with self.assertRaises(ConnectivityError):
                await self.directory.search("dana")


class IdentityTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_current_identity_returned_at_once(self):
        provider = IdentityProvider(Identity("cashier1"))
        self.assertEqual((await wait_for_identity(provider, 0.01)).uid, "cashier1")

    async def test_waits_for_identity(self):
        provider = IdentityProvider()
        asyncio.get_running_loop().call_later(0.01, provider.set, Identity("kiosk", anonymous=True))
        identity = await wait_for_identity(provider, 1)
        self.assertEqual(identity.kind, "anonymous")
        self.assertEqual(provider._listeners, [])

    async def test_timeout_returns_none(self):
        provider = IdentityProvider()
        self.assertIsNone(await wait_for_identity(provider, 0.02))
        self.assertEqual(provider._listeners, [])


if __name__ == "__main__":
    unittest.main()
