# tests/conftest.py
import os
import tempfile
from types import SimpleNamespace
from decimal import Decimal
from datetime import date
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

# ============================================================
# settings are read at import time, so set them before any
# backoffice import
# ============================================================
_TEST_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="backoffice-tests-"), "test.db")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{_TEST_DB_PATH}"

os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["JWT_ACCESS_SECRET_KEY"] = "test-access-secret"
os.environ["PO_AUTO_APPROVE_THRESHOLD"] = "100000"
os.environ["CASHBOOK_APPROVAL_LEVELS"] = "2"

from backoffice.constants.permissions import Role  # noqa: E402
from backoffice.core.db import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from backoffice.core.security import create_access_token, hash_password  # noqa: E402
from backoffice.models.masters.item_models import Item  # noqa: E402
from backoffice.models.masters.site_models import Site  # noqa: E402
from backoffice.models.masters.vendor_models import Vendor  # noqa: E402
from backoffice.models.users.user_models import User  # noqa: E402
from backoffice.schemas.inventory.inward_challan_schemas import InwardChallanCreateSchema  # noqa: E402
from backoffice.schemas.procurement.purchase_order_schemas import PurchaseOrderCreateSchema  # noqa: E402
from backoffice.services.inventory.inward_challan_service import create_inward_challan  # noqa: E402
from backoffice.services.procurement.purchase_order_service import create_purchase_order  # noqa: E402

from main import app  # noqa: E402

TEST_PASSWORD = "s3cret-pass"
# bcrypt is slow; hash once per run
_PASSWORD_HASH = hash_password(TEST_PASSWORD)

SEED_USERS = {
    "admin": Role.ADMIN,
    "director": Role.PROJECT_DIRECTOR,
    "director_2": Role.PROJECT_DIRECTOR,
    "purchase_manager": Role.PURCHASE_MANAGER,
    "purchase_manager_2": Role.PURCHASE_MANAGER,
    "site_engineer": Role.SITE_ENGINEER,
    "store_keeper": Role.STORE_KEEPER,
    "accountant": Role.ACCOUNTANT,
}


# =========================================
# ENGINE / SESSION (fresh schema per test)
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine):
    return sessionmaker(
        async_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as sess:
        yield sess


# =========================================
# SEED: users per role, sites, vendor, items
# =========================================
@pytest_asyncio.fixture(scope="function")
async def seed(async_session_maker) -> SimpleNamespace:
    async with async_session_maker() as sess:
        users = {
            key: User(
                username=f"{key}@example.com",
                full_name=key.replace("_", " ").title(),
                password_hash=_PASSWORD_HASH,
                role=role,
                is_active=True,
                token_version=0,
            )
            for key, role in SEED_USERS.items()
        }
        site = Site(name="Riverside Tower", code="SITE-A", is_active=True)
        site_b = Site(name="Hill View Villas", code="SITE-B", is_active=True)
        vendor = Vendor(name="Sharma Cement Traders", gstin="29ABCDE1234F1Z5", is_active=True)
        cement = Item(name="Cement OPC 53", code="CEM-53", unit="BAG", is_expiry_tracked=False, is_active=True)
        sealant = Item(name="PU Sealant", code="SEAL-PU", unit="TUBE", is_expiry_tracked=True, is_active=True)

        sess.add_all([*users.values(), site, site_b, vendor, cement, sealant])
        await sess.commit()

        # detached users keep their loaded state across service rollbacks
        sess.expunge_all()

    return SimpleNamespace(
        users=SimpleNamespace(**users),
        site_id=site.id,
        site_b_id=site_b.id,
        vendor_id=vendor.id,
        item_id=cement.id,
        tracked_item_id=sealant.id,
        password=TEST_PASSWORD,
    )


# =========================================
# FACTORIES
# =========================================
@pytest.fixture
def make_purchase_order(session, seed):
    async def _make(lines, *, site_id=None, user=None):
        payload = PurchaseOrderCreateSchema(
            purchase_order_date=date(2025, 1, 10),
            site_id=site_id or seed.site_id,
            vendor_id=seed.vendor_id,
            lines=[
                {"item_id": item_id, "ordered_qty": Decimal(str(qty)), "rate": Decimal(str(rate))}
                for item_id, qty, rate in lines
            ],
        )
        return await create_purchase_order(session, payload, user or seed.users.purchase_manager)

    return _make


@pytest.fixture
def make_inward_challan(session, seed):
    async def _make(purchase_order_id, items, *, inward_challan_no=None, challan_date=date(2025, 1, 15)):
        payload = InwardChallanCreateSchema(
            inward_challan_no=inward_challan_no,
            inward_challan_date=challan_date,
            purchase_order_id=purchase_order_id,
            items=items,
        )
        return await create_inward_challan(session, payload, seed.users.store_keeper)

    return _make


# =========================================
# HTTP CLIENT
# =========================================
@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        token = create_access_token(subject=user.username, token_version=user.token_version)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture(scope="function")
async def client(async_session_maker) -> AsyncGenerator[AsyncClient, None]:
    async def _override_get_db():
        async with async_session_maker() as sess:
            yield sess

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
