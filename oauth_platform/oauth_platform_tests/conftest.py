"""
Shared fixtures: every test gets fresh in-memory databases and apps built
through ``create_app`` with test settings.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from oauth_platform.oauth_platform.common.config import Settings
from oauth_platform.oauth_platform.oauth_service import db as oauth_db
from oauth_platform.oauth_platform.oauth_service.main import create_app as create_oauth_app
from oauth_platform.oauth_platform.catalog_service import db as catalog_db
from oauth_platform.oauth_platform.catalog_service.main import create_app as create_catalog_app


def make_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )


def override_for(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()
    return override_get_db


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, LOG_LEVEL="WARNING")


@pytest.fixture
def oauth_sessions():
    engine = make_engine()
    oauth_db.init_db(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def catalog_sessions():
    engine = make_engine()
    catalog_db.init_db(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def oauth_app_factory(oauth_sessions):
    """Build an OAuth app for the given settings, wired to the test database."""
    def factory(settings):
        app = create_oauth_app(settings)
        app.dependency_overrides[oauth_db.get_db] = override_for(oauth_sessions)
        return app
    return factory


@pytest.fixture
def oauth_client(oauth_app_factory, test_settings):
    return TestClient(oauth_app_factory(test_settings))


@pytest.fixture
def catalog_client(catalog_sessions, test_settings):
    app = create_catalog_app(test_settings)
    app.dependency_overrides[catalog_db.get_db] = override_for(catalog_sessions)
    return TestClient(app)


@pytest.fixture
def product_payload():
    def build(**overrides):
        payload = {
            "title": "Walnut Desk",
            "description": "Solid walnut writing desk",
            "imgSrc": "https://img.example.com/desk.jpg",
            "price": 349.0,
            "stock": 4,
            "sellerName": "Oak & Co",
            "sellerAddress": "12 Mill Lane",
            "category": "furniture",
        }
        payload.update(overrides)
        return payload
    return build


@pytest.fixture
def create_product(catalog_client, product_payload):
    def create(**overrides):
        response = catalog_client.post("/products", json=product_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()
    return create
