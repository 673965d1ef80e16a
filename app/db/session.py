from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.config import settings
from app.db.base import Base


def _connect_args(database_url: str) -> dict:
    # sqlite connections are shared with the threadpool FastAPI runs sync routes on
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {"connect_timeout": 30}


# Create the SQLAlchemy engine
engine = create_engine(settings.DATABASE_URL,
                       connect_args=_connect_args(settings.DATABASE_URL),
                       pool_pre_ping=True,
                       pool_recycle=3600,
)

# Create a configured "Session" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def init_db(bind=None) -> None:
    """Create the tables this service owns."""
    # register models on Base.metadata
    import app.models.wallet  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
