from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from todoapp.core.config import settings

DATABASE_URL = settings.DATABASE_URL

# SQLite refuse par défaut les connexions partagées entre threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    """Dépendance sessionDB"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
