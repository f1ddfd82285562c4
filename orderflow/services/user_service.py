from sqlalchemy.orm import Session

from orderflow.data.models.user import UserModel
from orderflow.domain.errors import EmailTaken, UserNotFound
from orderflow.domain.schemas import UserCreate, UserRead
from orderflow.repos.user_repo import UserRepo
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    """Uzytkownicy sa tylko adresatami powiadomien i wlascicielami koszykow / portfeli."""

    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        email = payload.email.strip().lower() if payload.email else None

        # ponowne utworzenie tego samego id zwraca istniejacego usera
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        if email and self.repo.get_by_email(email):
            raise EmailTaken(f"E-mail {email} is already registered")

        created = self.repo.create_user(UserModel(id=payload.id, name=payload.name, email=email))
        logger.info(f"Utworzono uzytkownika {created.id}")
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise UserNotFound()
        return UserRead.model_validate(user)
