"""Pytest configuration and fixtures."""

import pytest

from dbutils import Connection
from editor_api import app
from make_sample_database import create_sample_database


@pytest.fixture
def db_path(tmp_path):
    """Sample database with three people and one note."""
    return create_sample_database(str(tmp_path / "sample.db"))


@pytest.fixture
def empty_db_path(tmp_path):
    """Sample schema without any rows."""
    return create_sample_database(str(tmp_path / "empty.db"), with_rows=False)


@pytest.fixture
def connection(db_path):
    connection = Connection(db_path)
    yield connection
    connection.close()


@pytest.fixture
def statements(connection):
    """Every SQL statement the connection executes, in order."""
    executed = []
    connection.set_trace_callback(executed.append)
    yield executed
    connection.set_trace_callback(None)


@pytest.fixture
def flask_app(db_path, tmp_path):
    app.config.update(
        TESTING=True,
        DATABASE=db_path,
        STATE_DIR=str(tmp_path / "state"),
        PAGE_SIZE=20,
    )
    yield app


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()
