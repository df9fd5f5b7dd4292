import os
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, Engine, inspect
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()

# data/ lives next to the backend/ directory (repo root) unless overridden
DATA_DIR = Path(os.getenv("SALESPULSE_DATA_DIR", Path(__file__).parent.parent.parent / "data"))
DB_FILENAME = "salespulse.db"

# Alembic script directory, used when running migrations programmatically
BACKEND_DIR = Path(__file__).parent.parent          # …/backend/
ALEMBIC_DIR = BACKEND_DIR / "alembic"

_engines: dict[str, Engine] = {}


def database_url(data_dir: Optional[Path] = None) -> str:
    return f"sqlite:///{(data_dir or DATA_DIR) / DB_FILENAME}"


def get_or_create_engine(db_url: Optional[str] = None) -> Engine:
    from . import models  # noqa: F401  registers tables on Base.metadata

    url = db_url or database_url()
    if url not in _engines:
        if url == database_url():
            DATA_DIR.mkdir(parents=True, exist_ok=True)
        engine = create_engine(url, connect_args={"check_same_thread": False})
        Base.metadata.create_all(bind=engine)
        _engines[url] = engine
    return _engines[url]


def _run_alembic_upgrade(db_url: str, *, is_new_db: bool = False) -> None:
    """Run Alembic migrations to head for the given SQLite DB URL.

    - Brand-new DBs (``is_new_db=True``): ``create_all`` already built the
      current schema in this process, so the DB is only stamped to head.
    - Existing DBs with an ``alembic_version`` table: ``upgrade head``.
    - DBs that have tables but were never stamped: stamp the baseline
      revision, then ``upgrade head``.
    """
    from alembic.config import Config
    from alembic import command

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", db_url)

    if is_new_db:
        command.stamp(alembic_cfg, "head")
        return

    tmp_engine = create_engine(db_url, connect_args={"check_same_thread": False})
    try:
        has_alembic_version = "alembic_version" in inspect(tmp_engine).get_table_names()
    finally:
        tmp_engine.dispose()

    if not has_alembic_version:
        command.stamp(alembic_cfg, "0001")

    command.upgrade(alembic_cfg, "head")


def init_db(data_dir: Optional[Path] = None) -> str:
    """Create tables and run Alembic migrations. Returns the DB URL."""
    target_dir = data_dir or DATA_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    db_path = target_dir / DB_FILENAME
    db_url = database_url(target_dir)

    # Track whether this is a brand-new DB before create_all creates the file.
    is_new_db = not db_path.exists()
    get_or_create_engine(db_url)
    _run_alembic_upgrade(db_url, is_new_db=is_new_db)
    return db_url


def get_db() -> Generator[Session, None, None]:
    engine = get_or_create_engine()
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = _SessionLocal()
    try:
        yield db
    finally:
        db.close()
