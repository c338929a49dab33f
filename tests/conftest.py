import os

import pytest

# Settings are read on first use; keep tests off the network and the real database.
os.environ.setdefault("ASSET_SERVICE_URL", "http://asset-service.invalid")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("SEED_DEFAULT_RULESET", "false")


class FakeAssetClient:
    def __init__(self, statuses=None, error=None):
        self.statuses = statuses or {}
        self.error = error
        self.calls = []

    def get_asset(self, asset_id):
        self.calls.append(asset_id)
        if self.error is not None:
            raise self.error
        return {"id": asset_id, "status": self.statuses.get(asset_id, "SELLABLE")}


@pytest.fixture
def db_session(tmp_path, monkeypatch):
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.delenv("AUDIT_EXPORT_PATH", raising=False)

    from cto_engine.config import get_settings
    from cto_engine.database import reset_engine, get_engine, get_sessionmaker
    from cto_engine import models  # noqa: F401
    from cto_engine.models.base import Base

    get_settings.cache_clear()
    reset_engine()
    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    SessionLocal = get_sessionmaker()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        get_settings.cache_clear()
        reset_engine()


@pytest.fixture
def asset_client():
    return FakeAssetClient()


@pytest.fixture
def default_rule_set(db_session):
    from cto_engine.services.seeding import seed_default_ruleset

    return seed_default_ruleset(db_session)


@pytest.fixture
def asset_client_factory():
    return FakeAssetClient
