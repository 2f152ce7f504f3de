import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from experiment_admin.database import Base, get_db
from experiment_admin.models import Experiment, Variant
from fastapi.testclient import TestClient
from experiment_admin.main import app


SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

AUTH_HEADERS = {"Authorization": "Bearer default-dev-token"}


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db):
    """Extra sessions on the same test database (for simulating other requests)"""
    return TestingSessionLocal


@pytest.fixture
def client(db):
    """Test client with database dependency override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return dict(AUTH_HEADERS)


def make_experiment(db, name, variant_keys=(), status="active"):
    experiment = Experiment(name=name, status=status)
    db.add(experiment)
    db.flush()

    for key in variant_keys:
        db.add(Variant(experiment_id=experiment.id, key=key, weight=50))
    db.commit()
    db.refresh(experiment)
    return experiment


@pytest.fixture
def sample_experiment(db):
    # inserted B first on purpose - the resolver must sort by key itself
    return make_experiment(db, "checkout_flow", ["B", "A"])


@pytest.fixture
def empty_experiment(db):
    return make_experiment(db, "no_variants_yet", [], status="draft")


@pytest.fixture
def experiment_factory(db):
    """make_experiment bound to the test session"""
    def factory(name, variant_keys=(), status="active"):
        return make_experiment(db, name, variant_keys, status=status)
    return factory
