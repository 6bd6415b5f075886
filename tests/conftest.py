import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from passkey_auth.config import Settings
from passkey_auth.db.engine import create_session_factory, init_db
from passkey_auth.db.orm import User
from passkey_auth.services import (
    AuthenticationHandler, ChallengeManager, CredentialService,
    RegistrationHandler,
)
from passkey_auth.session import JWTSessionIssuer
from passkey_auth.store import SqlAlchemyPasskeyStore

from tests.helpers import ORIGIN, RP_ID, RP_NAME, FakeClock, FakeVerifier


@pytest.fixture
def settings():
    return Settings(
        secret_key="test-secret",
        db_url="sqlite://",
        rp_id=RP_ID,
        rp_name=RP_NAME,
        origins=[ORIGIN],
        cleanup_inactive_days=0,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def users(db):
    db.add_all([
        User(id="u1", email="u1@example.com", name="User One", email_verified=True),
        User(id="u2", email="u2@example.com", name="User Two"),
    ])
    db.commit()


@pytest.fixture
def store(db):
    return SqlAlchemyPasskeyStore(db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def challenges(store, clock):
    return ChallengeManager(store, ttl_seconds=300, clock=clock)


@pytest.fixture
def registration(store, challenges, verifier, clock):
    return RegistrationHandler(
        store=store,
        challenges=challenges,
        verifier=verifier,
        rp_id=RP_ID,
        rp_name=RP_NAME,
        origins=[ORIGIN],
        clock=clock,
    )


@pytest.fixture
def authentication(store, challenges, verifier, settings, clock):
    return AuthenticationHandler(
        store=store,
        challenges=challenges,
        verifier=verifier,
        sessions=JWTSessionIssuer(settings),
        origins=[ORIGIN],
        clock=clock,
    )


@pytest.fixture
def credentials(store, clock):
    return CredentialService(store, clock=clock)
