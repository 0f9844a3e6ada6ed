import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.db import Base
from app.models.contact import Contact
from app.models.enums import ChannelConnectionStatus, ContactSource
from app.models.workspace import ChannelConnection, Workspace
from app.services.common import normalize_phone
from tests.helpers import BUSINESS_PHONE, BUSINESS_PHONE_NUMBER_ID


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; take over transaction control.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, autoflush=False, join_transaction_mode="create_savepoint")
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def workspace(db_session):
    workspace = Workspace(name="Acme Bakery")
    db_session.add(workspace)
    db_session.commit()
    db_session.refresh(workspace)
    return workspace


@pytest.fixture()
def other_workspace(db_session):
    workspace = Workspace(name="Other Shop")
    db_session.add(workspace)
    db_session.commit()
    db_session.refresh(workspace)
    return workspace


@pytest.fixture()
def channel_connection(db_session, workspace):
    connection = ChannelConnection(
        workspace_id=workspace.id,
        phone_number_id=BUSINESS_PHONE_NUMBER_ID,
        display_phone=BUSINESS_PHONE,
        normalized_phone=normalize_phone(BUSINESS_PHONE),
        status=ChannelConnectionStatus.connected,
    )
    db_session.add(connection)
    db_session.commit()
    db_session.refresh(connection)
    return connection


@pytest.fixture()
def contact(db_session, workspace):
    contact = Contact(
        workspace_id=workspace.id,
        phone="15551234567",
        name="Jane Doe",
        source=ContactSource.manual,
    )
    db_session.add(contact)
    db_session.commit()
    db_session.refresh(contact)
    return contact
