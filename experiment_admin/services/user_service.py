"""Service for the user registry"""
import logging
from typing import List
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from experiment_admin.models import User

logger = logging.getLogger(__name__)


def ensure_user(db: Session, user_id: str) -> User:
    """
    Create the user row if it doesn't exist yet (no-op otherwise).

    Two first-time requests for the same user can race here; the loser's
    insert hits the primary key, so we roll back and read the winner's row.
    """
    user = db.get(User, user_id)
    if user is not None:
        return user

    db.add(User(id=user_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        user = db.get(User, user_id)
        if user is None:
            raise
        logger.debug("User %s was created concurrently", user_id)
        return user

    logger.info("Created user %s", user_id)
    return db.get(User, user_id)


def list_users(db: Session) -> List[User]:
    """All users ordered by id"""
    return db.query(User).order_by(User.id.asc()).all()
