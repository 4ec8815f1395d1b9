import os
from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bracket_engine.db")

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}
_echo = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")

if _is_sqlite and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

# Row locks (SELECT ... FOR UPDATE) only take effect on server databases; SQLite ignores them
engine: Engine = create_engine(
    DATABASE_URL,
    echo=_echo,
    connect_args=_connect_args,
    pool_pre_ping=not _is_sqlite,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def import_models() -> None:
    """Import every table model so it is registered with SQLModel metadata"""
    from bracket_engine.models.dispute import Dispute  # noqa: F401
    from bracket_engine.models.match import Match  # noqa: F401
    from bracket_engine.models.payout import Payout  # noqa: F401
    from bracket_engine.models.registration import Registration  # noqa: F401
    from bracket_engine.models.team import Team, TeamMember  # noqa: F401
    from bracket_engine.models.tournament import Tournament  # noqa: F401
    from bracket_engine.models.user import User  # noqa: F401
    from bracket_engine.models.wallet import Wallet, WalletTransaction  # noqa: F401


def init_db() -> None:
    """Initialize database - create all tables"""
    import_models()
    SQLModel.metadata.create_all(engine)
