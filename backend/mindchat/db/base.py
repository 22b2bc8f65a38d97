from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_now() -> datetime:
    """Timezone-aware current time, used as the Python-side column default."""
    return datetime.now(timezone.utc)
