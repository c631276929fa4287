from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.database import with_transaction
from storefront.data.models.user import UserModel
from storefront.repos.user_repo import UserRepo
from storefront.domain.schemas import UserSyncIn
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepo(db)

    def get_or_create_user(self, external_id: str) -> UserModel:
        """
        Idempotent mapping of an identity provider id to a local user.
        Two first requests racing on the unique external_id both end up with the same row.
        """
        existing = self.repo.get_by_external_id(external_id)
        if existing:
            return existing

        def _create(db: Session) -> UserModel:
            try:
                # savepoint: a lost race only rolls back this insert
                with db.begin_nested():
                    user = self.repo.create_user(UserModel(external_id=external_id, role="BUYER"))
                logger.info(f"Created local user {user.id} for identity {external_id}")
                return user
            except IntegrityError:
                return self.repo.get_by_external_id(external_id)

        return with_transaction(self.db, _create)

    def sync_user(self, external_id: str, payload: UserSyncIn) -> UserModel:
        """Identity provider user.created / user.updated."""

        def _sync(db: Session) -> UserModel:
            user = self.repo.get_by_external_id(external_id)
            if user is None:
                user = self.repo.create_user(UserModel(external_id=external_id, role="BUYER"))

            for field in ("email", "first_name", "last_name", "role"):
                value = getattr(payload, field)
                if value is not None:
                    setattr(user, field, value)
            db.flush()
            return user

        user = with_transaction(self.db, _sync)
        logger.info(f"Synced user {user.id} ({external_id}) role={user.role}")
        return user
