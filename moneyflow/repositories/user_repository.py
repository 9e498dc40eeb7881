import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from moneyflow.models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Users are keyed by the token subject; nothing else is stored about them"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_auth_id(self, auth_user_id: str) -> User | None:
        return self.db.query(User).filter(User.auth_user_id == auth_user_id).first()

    def get_or_create_by_auth_id(self, auth_user_id: str) -> User:
        """
        Existing user for this subject, or a new one.

        Two first requests from the same subject can race to insert; the loser
        hits the unique constraint and reads the winner's row instead.
        """
        user = self.get_by_auth_id(auth_user_id)
        if user:
            return user

        user = User(auth_user_id=auth_user_id)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.debug("User %s provisioned concurrently, reusing it", auth_user_id)
            return self.get_by_auth_id(auth_user_id)

        self.db.refresh(user)
        logger.info("Provisioned user %s for subject %s", user.id, auth_user_id)
        return user
