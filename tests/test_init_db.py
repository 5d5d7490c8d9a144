# tests/test_init_db.py
from comu_relay import init_db as init_db_module


def test_init_db_creates_tables(mocker) -> None:
    create = mocker.patch.object(init_db_module, "create_tables")
    drop = mocker.patch.object(init_db_module, "drop_tables")

    init_db_module.init_db()

    create.assert_called_once_with()
    drop.assert_not_called()


def test_init_db_reset_drops_first(mocker) -> None:
    calls = mocker.MagicMock()
    mocker.patch.object(init_db_module, "create_tables", calls.create)
    mocker.patch.object(init_db_module, "drop_tables", calls.drop)

    init_db_module.init_db(reset=True)

    assert [name for name, _, _ in calls.mock_calls] == ["drop", "create"]
