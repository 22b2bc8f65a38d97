"""
Seed the default characters and bible studies.

Usage:
    python -m mindchat.scripts.seed
"""
import logging
import sys

from mindchat.db.session import SessionLocal
from mindchat.services.character_seed import seed_characters
from mindchat.services.study_seed import seed_studies

logger = logging.getLogger(__name__)


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    db = SessionLocal()
    try:
        characters = seed_characters(db)
        studies = seed_studies(db)
    except Exception:
        logger.exception("Seeding failed")
        return 1
    finally:
        db.close()

    logger.info(f"Seeding completed ({len(characters)} new characters, {len(studies)} new studies)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
