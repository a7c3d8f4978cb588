from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker

from flexify.core import config


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_schema_checked = False

# Indexes added after the first release. create_all() only builds them for new
# tables, so older databases get them here.
_INDEX_STATEMENTS = {
    'bookings': [
        (
            'uq_bookings_active_slot',
            "CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_active_slot "
            "ON bookings(trainer_id, date, slot_start, slot_end) WHERE status = 'booked'",
        ),
        (
            'idx_bookings_member_date',
            'CREATE INDEX IF NOT EXISTS idx_bookings_member_date ON bookings(member_id, date)',
        ),
    ],
}


class SchemaUpgradeError(RuntimeError):
    """An index could not be added because existing rows violate it."""


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_schema(bind=None) -> None:
    global _schema_checked

    if _schema_checked:
        return

    with _schema_lock:
        if _schema_checked:
            return

        target = bind or engine
        existing_tables = set(inspect(target).get_table_names())

        with target.begin() as connection:
            for table_name, statements in _INDEX_STATEMENTS.items():
                if table_name not in existing_tables:
                    continue
                for index_name, statement in statements:
                    try:
                        connection.execute(text(statement))
                    except IntegrityError as exc:
                        raise SchemaUpgradeError(
                            f"Cannot create index {index_name} on {table_name}: existing rows violate it. "
                            "Resolve the duplicate rows before starting the service."
                        ) from exc

        _schema_checked = True


def reset_schema_check() -> None:
    global _schema_checked

    with _schema_lock:
        _schema_checked = False
