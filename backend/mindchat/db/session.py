from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from mindchat.core.config import settings

connect_args = {}
engine_kwargs = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False
else:
    # Supabase requires SSL connection
    if "supabase" in settings.DATABASE_URL.lower():
        connect_args["sslmode"] = "require"
    engine_kwargs = {"pool_size": 5, "max_overflow": 10}

engine = create_engine(
    settings.DATABASE_URL,
    future=True,
    pool_pre_ping=True,
    connect_args=connect_args,
    **engine_kwargs,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
