from sqlalchemy.orm import Session

from .database import Base, engine
from .services.auth import seed_defaults


def init_database() -> None:
    Base.metadata.create_all(bind=engine)
    db = Session(bind=engine)
    try:
        seed_defaults(db)
    finally:
        db.close()


__all__ = ["init_database"]
