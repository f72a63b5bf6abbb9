# Overview: Flask extension instances for database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()


def configure_sqlite_engine(engine) -> None:
    """
    Make pysqlite behave like a real transactional store.

    - Foreign keys are off by default in SQLite; turn them on per connection.
    - pysqlite opens transactions lazily and breaks SAVEPOINT; let SQLAlchemy
      emit BEGIN itself so nested transactions work.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")
