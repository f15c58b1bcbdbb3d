from unittest import mock

from sqlalchemy.pool import StaticPool

from expense_api.database import build_engine


def test_server_database_gets_bounded_pool(settings):
    settings = settings.model_copy(
        update={
            "database_url": "postgresql://expenses:secret@db/expenses",
            "pool_size": 3,
            "max_overflow": 2,
            "pool_timeout": 7.5,
        }
    )
    with mock.patch("expense_api.database.create_engine") as create_engine:
        build_engine(settings)
    _, kwargs = create_engine.call_args
    assert kwargs["pool_size"] == 3
    assert kwargs["max_overflow"] == 2
    assert kwargs["pool_timeout"] == 7.5
    assert kwargs["pool_pre_ping"] is True


def test_in_memory_sqlite_shares_one_connection(settings):
    engine = build_engine(settings)
    try:
        assert isinstance(engine.pool, StaticPool)
    finally:
        engine.dispose()


def test_file_sqlite_is_not_pooled_statically(settings, tmp_path):
    settings = settings.model_copy(update={"database_url": f"sqlite:///{tmp_path / 'expenses.db'}"})
    engine = build_engine(settings)
    try:
        assert not isinstance(engine.pool, StaticPool)
    finally:
        engine.dispose()
