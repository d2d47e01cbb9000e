from __future__ import annotations

import logging

from sqlalchemy import create_engine

from models import Base

logger = logging.getLogger(__name__)


def init_db(database_url: str = "sqlite:///./app.db") -> None:
    engine = create_engine(database_url, echo=True)
    Base.metadata.create_all(bind=engine)

    from dotenv import load_dotenv

    load_dotenv()
    import os
    from sqlalchemy.orm import sessionmaker
    from models import Eatery, EateryStatus

    eatery_name = os.getenv("DEMO_EATERY_NAME", "Demo Eatery")
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    try:
        existing = session.query(Eatery).filter(Eatery.name == eatery_name).first()
        if existing:
            logger.info("Demo eatery already exists: %s (id %s)", eatery_name, existing.id)
            return

        new_eatery = Eatery(
            name=eatery_name,
            location=os.getenv("DEMO_EATERY_LOCATION", "Lagos"),
            status=EateryStatus.APPROVED,
            has_daily_specials=True,
            daily_specials_email=os.getenv("DEMO_EATERY_EMAIL", "menu@example.com"),
        )
        session.add(new_eatery)
        session.commit()
        session.refresh(new_eatery)
        logger.info("Demo eatery created: %s (id %s)", eatery_name, new_eatery.id)
    finally:
        session.close()



if __name__ == "__main__":
    import sys

    logging.basicConfig(level=logging.INFO)
    database_url = sys.argv[1] if len(sys.argv) > 1 else "sqlite:///./app.db"
    init_db(database_url)
