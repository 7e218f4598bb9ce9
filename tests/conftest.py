"""Pytest configuration and fixtures."""

import os

# Must be set before the application settings are first loaded
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["AMAZON_LWA_CLIENT_ID"] = "amzn1.application-oa2-client.published"
os.environ["AMAZON_LWA_CLIENT_SECRET"] = "amzn1.oa2-cs.v1.published-secret"
os.environ["AMAZON_SP_API_APP_ID"] = "amzn1.sp.solution.test-app"
os.environ["AMAZON_REFRESH_TOKEN"] = "Atzr|env-refresh-token"
os.environ["FRONTEND_URL"] = "https://dashboard.example.com"

from typing import AsyncGenerator, Optional
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sellerdash.config import Settings, get_settings
from sellerdash.core.security import create_access_token
from sellerdash.models import Account, AmazonCredential, Base
from sellerdash.services.amazon.oauth import AmazonOAuthService
from sellerdash.services.storage import Storage

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
OWNER_ID = "user-1"


class FakeAmazon:
    """In-process stand-in for the LWA token endpoint and SP-API hosts.

    Served through ``httpx.MockTransport``; records every request so tests
    can assert on URLs, headers and how many token exchanges happened.
    """

    CATALOG = "/catalog/2022-04-01/items"
    INVENTORY = "/fba/inventory/v1/summaries"
    ORDERS = "/orders/v0/orders"
    PARTICIPATIONS = "/sellers/v1/marketplaceParticipations"
    REPORTS = "/reports/2021-06-30/reports"

    def __init__(self) -> None:
        self.token_requests: list[dict[str, str]] = []
        self.api_requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_error_body: dict = {"error": "invalid_grant"}
        self.expires_in = 3600
        self.issued_refresh_token: Optional[str] = "Atzr|issued-refresh-token"
        self.routes: dict[str, tuple[int, object]] = {}
        self.failures: dict[str, Exception] = {}
        self.transport = httpx.MockTransport(self.handle)

    def respond(self, path: str, status_code: int = 200, json: object = None) -> None:
        self.routes[path] = (status_code, json if json is not None else {})

    @property
    def token_calls(self) -> int:
        return len(self.token_requests)

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.amazon.com":
            return self._token(request)

        self.api_requests.append(request)
        path = request.url.path
        if path in self.failures:
            raise self.failures[path]
        status_code, payload = self.routes.get(
            path, (404, {"errors": [{"code": "NotFound", "message": "Resource not found"}]})
        )
        return httpx.Response(status_code, json=payload)

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.content.decode()))
        self.token_requests.append(form)
        if "token" in self.failures:
            raise self.failures["token"]
        if self.token_status != 200:
            return httpx.Response(self.token_status, json=self.token_error_body)

        body = {
            "access_token": f"Atza|access-{self.token_calls}",
            "token_type": "bearer",
            "expires_in": self.expires_in,
        }
        if form.get("grant_type") == "authorization_code" and self.issued_refresh_token:
            body["refresh_token"] = self.issued_refresh_token
        return httpx.Response(200, json=body)


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def fake_amazon() -> FakeAmazon:
    return FakeAmazon()


@pytest.fixture
def oauth(settings: Settings, fake_amazon: FakeAmazon) -> AmazonOAuthService:
    return AmazonOAuthService(settings=settings, transport=fake_amazon.transport)


@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def storage(db_session: AsyncSession) -> Storage:
    return Storage(db_session)


@pytest_asyncio.fixture
async def account(storage: Storage) -> Account:
    """Account owned by ``OWNER_ID`` with the US marketplace enabled."""
    account = await storage.create_account(owner_id=OWNER_ID, brand_name="Acme Brand")
    await storage.create_marketplace_connection(account.id, "US")
    return account


@pytest_asyncio.fixture
async def credential(storage: Storage, account: Account, settings: Settings) -> AmazonCredential:
    return await storage.create_credentials(
        account_id=account.id,
        lwa_client_id=settings.AMAZON_LWA_CLIENT_ID,
        lwa_client_secret=settings.AMAZON_LWA_CLIENT_SECRET,
        refresh_token="Atzr|stored-refresh-token",
        region="NA",
        seller_id="A1SELLER",
        is_active=True,
    )


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(OWNER_ID)}"}


@pytest_asyncio.fixture
async def api_client(
    session_factory, fake_amazon: FakeAmazon, oauth: AmazonOAuthService
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client for the app with the test database and fake Amazon."""
    from sellerdash.api.deps import get_db, get_http_transport, get_oauth_service
    from sellerdash.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_http_transport] = lambda: fake_amazon.transport
    app.dependency_overrides[get_oauth_service] = lambda: oauth

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        yield client

    app.dependency_overrides.clear()
