import pytest

from storefront.app import create_app
from storefront.common.config import AppConfig
from storefront.common.db.session import create_db_engine, init_db, make_session_factory
from storefront.common.services import AddressService, CartService, CatalogService, OrderService, SettingsService
from storefront.common.services.auth import Principal, issue_token


JWT_SECRET = "test-jwt-secret"


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'store.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def catalog(session_factory):
    return CatalogService(session_factory)


@pytest.fixture
def cart(session_factory):
    return CartService(session_factory)


@pytest.fixture
def addresses(session_factory):
    return AddressService(session_factory)


@pytest.fixture
def orders(session_factory):
    return OrderService(session_factory)


@pytest.fixture
def settings(session_factory):
    return SettingsService(session_factory)


@pytest.fixture
def make_product(catalog):
    def _make(name="Widget", price="10.00", stock=5, status="active"):
        return catalog.create_product(name=name, price=price, stock=stock, status=status)

    return _make


@pytest.fixture
def make_address(addresses):
    def _make(user_id, is_default=False, name="Li Lei"):
        return addresses.create_address(
            user_id=user_id,
            data={
                "name": name,
                "phone": "13800000000",
                "province": "Zhejiang",
                "city": "Hangzhou",
                "district": "Xihu",
                "detail": "1 Wensan Road",
                "is_default": is_default,
            },
        )

    return _make


# -- HTTP ------------------------------------------------------------------

@pytest.fixture
def app(tmp_path):
    config = AppConfig(
        database_url=f"sqlite:///{tmp_path / 'app.db'}",
        secret_key="test-secret",
        jwt_secret=JWT_SECRET,
        log_level="WARNING",
        currency="CNY",
    )
    app = create_app(config)
    app.config["TESTING"] = True
    yield app
    app.extensions["storefront_engine"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    def _headers(user_id, role="user"):
        token = issue_token(Principal(id=user_id, role=role), JWT_SECRET, expires_in=3600)
        return {"Authorization": f"Bearer {token}"}

    return _headers
