import os
import sys
import tempfile
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

TEST_AUTH_KEY = "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"

os.environ.setdefault("AUTH_JWT_KEY", TEST_AUTH_KEY)
os.environ.setdefault("AUTH_ALGORITHM", "HS256")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENABLE_BACKGROUND_TASKS", "false")
os.environ.setdefault("FRONTEND_URL", "https://cards.example.com")
_storage_root = tempfile.mkdtemp(prefix="ecards-test-")
os.environ.setdefault("CUSTOM_ART_DIR", os.path.join(_storage_root, "custom"))
os.environ.setdefault("PREMADE_ART_DIR", os.path.join(_storage_root, "premade"))

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.database import Base  # noqa: E402
from app import models  # noqa: E402,F401
from app.models.card import ECard  # noqa: E402
from app.models.sender import Sender  # noqa: E402
from app.services.artwork import LocalArtworkStore  # noqa: E402

T0 = datetime(2026, 3, 1, 12, 0, 0)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingSender:
    """Notification sender that records sends and fails for chosen card ids."""

    def __init__(self, fail_for=None):
        self.fail_for = set(fail_for or ())
        self.sent = []

    def send(self, card, sender):
        if card.id in self.fail_for:
            raise RuntimeError(f"SMTP refused {card.recipient_email}")
        self.sent.append((card.id, sender.email))


def make_engine(url: str = "sqlite://"):
    if url == "sqlite://":
        engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON;")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def session_factory():
    engine = make_engine()
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def artwork_store(tmp_path):
    return LocalArtworkStore(tmp_path / "custom", tmp_path / "premade")


@pytest.fixture
def make_card(db):
    """Insert a card directly, bypassing creation rules."""
    senders = {}

    def _make_card(**overrides) -> ECard:
        email = overrides.pop("sender_email", "sam@example.com")
        sender = senders.get(email)
        if sender is None:
            sender = Sender(name="Sam Sender", email=email, created_date=T0)
            db.add(sender)
            db.flush()
            senders[email] = sender

        fields = {
            "recipient_name": "Riley",
            "recipient_email": "riley@example.com",
            "message": "Happy Birthday!",
            "created_date": T0,
            "scheduled_send_date": T0,
            "expiry_date": T0 + timedelta(days=14),
            "is_sent": False,
            "view_count": 0,
        }
        fields.update(overrides)
        card = ECard(sender_id=sender.id, **fields)
        db.add(card)
        db.commit()
        db.refresh(card)
        return card

    return _make_card
