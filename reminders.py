import logging
from datetime import date
from typing import Callable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import Eatery, EateryMenu, EateryStatus

logger = logging.getLogger(__name__)


def pending_eateries(db: Session, menu_date: date) -> List[Eatery]:
    """Approved eateries with daily specials that have not uploaded a menu for ``menu_date``."""
    uploaded = select(EateryMenu.eatery_id).where(EateryMenu.menu_date == menu_date)
    return (
        db.query(Eatery)
        .filter(Eatery.status == EateryStatus.APPROVED)
        .filter(Eatery.has_daily_specials.is_(True))
        .filter(Eatery.daily_specials_email.isnot(None))
        .filter(Eatery.id.notin_(uploaded))
        .order_by(Eatery.id)
        .all()
    )


def send_reminder_email(eatery: Eatery, menu_date: date) -> None:
    logger.info(
        "--- EMAIL SIMULATION: daily menu reminder for %s (%s) on %s ---",
        eatery.name, eatery.daily_specials_email, menu_date,
    )


def send_daily_menu_reminders(
        db: Session,
        menu_date: date,
        sender: Callable[[Eatery, date], None] = send_reminder_email
) -> int:
    eateries = pending_eateries(db, menu_date)
    logger.info("Found %d eateries to remind for %s", len(eateries), menu_date)

    sent = 0
    for eatery in eateries:
        try:
            sender(eatery, menu_date)
        except Exception as e:
            logger.error("Reminder to %s failed: %s", eatery.daily_specials_email, e)
            continue
        sent += 1

    logger.info("Summary: %d reminders sent", sent)
    return sent


if __name__ == "__main__":
    import sys

    from dotenv import load_dotenv
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    database_url = sys.argv[1] if len(sys.argv) > 1 else "sqlite:///./app.db"
    engine = create_engine(database_url)
    session = sessionmaker(bind=engine)()
    try:
        send_daily_menu_reminders(session, date.today())
    finally:
        session.close()
