# asocial/services/user_service.py
import structlog

from asocial.infrastructure.users_repo import UserRepository
from asocial.models.user import User
from asocial.schemas.user_schema import UserCreate

logger = structlog.get_logger(__name__)


class UserService:
    def __init__(self, repo: UserRepository):
        self.repo = repo

    async def register_user(self, user_in: UserCreate) -> User:
        if await self.repo.get_by_username(user_in.username):
            logger.debug("register_username_exists", username=user_in.username)
            raise ValueError("username already taken")
        created = await self.repo.create(User(username=user_in.username))
        logger.info("user_registered", user_id=str(created.id), username=created.username)
        return created
