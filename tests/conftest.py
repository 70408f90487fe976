from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine.base import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session
from sqlalchemy.pool import StaticPool

from artydrop.models.db import Base
from artydrop.payments import PaymentSettings, StripeCheckoutClient
from artydrop.repositories.gallery_repository import GalleryRepository
from tests.helpers import DummyAsyncS3Client


@pytest.fixture(scope="function")
def engine() -> Generator[Engine]:
    """In-memory SQLite engine shared across threads, with the schema created."""
    import artydrop.models  # noqa: F401

    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine: Engine) -> Generator[Session]:
    session = sessionmaker(bind=engine)()
    yield session
    session.close()


@pytest.fixture
def repo(db_session: Session) -> GalleryRepository:
    return GalleryRepository(db_session)


@pytest.fixture
def s3_client() -> DummyAsyncS3Client:
    return DummyAsyncS3Client()


@pytest.fixture
def payment_settings() -> PaymentSettings:
    return PaymentSettings(
        _env_file=None,
        secret_key="sk_test_dummy",
        webhook_secret="whsec_test",
        currency="eur",
        public_base_url="https://artydrop.test",
        trust_success_redirect=False,
    )


@pytest.fixture
def payment_client(payment_settings: PaymentSettings) -> StripeCheckoutClient:
    return StripeCheckoutClient(payment_settings)


@pytest.fixture(scope="function")
def client(db_session: Session, s3_client: DummyAsyncS3Client, payment_client: StripeCheckoutClient) -> Generator[TestClient]:
    """FastAPI test client wired to the test database and provider doubles."""
    from artydrop.dependencies import get_payment_client, get_s3_client
    from artydrop.main import app
    from artydrop.models.db import get_db

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_s3_client] = lambda: s3_client
    app.dependency_overrides[get_payment_client] = lambda: payment_client

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
