import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine

from xmla_proxy.main import app
from xmla_proxy.core.connection import get_engine_client
from xmla_proxy.core.engines.base import EngineClient, EngineSession, QueryRows
from xmla_proxy.core.engines.sql import SqlEngineClient


DEFAULT_ROWS = QueryRows(columns=["[Value]"], rows=[(1,)])


# Scripted session: query text -> QueryRows or exception to raise
class FakeSession(EngineSession):
    def __init__(self, responses):
        self.responses = responses
        self.executed = []
        self.close_calls = 0
        self.usable = True

    def execute(self, query):
        self.executed.append(query)
        response = self.responses.get(query, DEFAULT_ROWS)
        if isinstance(response, BaseException):
            raise response
        return response

    def is_usable(self):
        return self.usable

    def close(self):
        self.close_calls += 1


class FakeEngineClient(EngineClient):
    def __init__(self):
        self.responses = {}
        self.connect_error = None
        self.descriptors = []
        self.sessions = []

    def connect(self, descriptor):
        self.descriptors.append(descriptor)
        if self.connect_error is not None:
            raise self.connect_error
        session = FakeSession(self.responses)
        self.sessions.append(session)
        return session


@pytest.fixture
def fake_engine():
    return FakeEngineClient()


@pytest.fixture
def fake_session():
    return FakeSession({})


@pytest.fixture
def pbi_headers():
    return {
        "x-pbi-tenant-id": "11111111-2222-3333-4444-555555555555",
        "x-pbi-client-id": "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee",
        "x-pbi-client-secret": "s3cr3t~value",
        "x-pbi-xmla-endpoint": "powerbi://api.powerbi.com/v1.0/myorg/Analytics",
        "x-pbi-dataset-name": "Payment Report",
    }


# Client backed by the scripted engine
@pytest_asyncio.fixture(scope="function")
async def client(fake_engine):
    app.dependency_overrides[get_engine_client] = lambda: fake_engine

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# SQLite file standing in for a semantic model
@pytest.fixture
def sqlite_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'model.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.exec_driver_sql("CREATE TABLE Domains (domain_id INTEGER, name TEXT)")
        conn.exec_driver_sql(
            "INSERT INTO Domains VALUES (1, 'sales'), (2, 'finance'), (3, 'hr')"
        )
    engine.dispose()
    return url


# Client backed by the real SQLAlchemy backend
@pytest_asyncio.fixture(scope="function")
async def sql_client():
    app.dependency_overrides[get_engine_client] = lambda: SqlEngineClient()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
