"""
User repository for account lookup and registration.
"""

from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.models.base import utc_now_iso
from insightflow.models.user import User, build_avatar_url


class UserRepository:
    """
    Repository for user data access.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_user(
        self,
        username: str,
        email: str,
        hashed_password: str,
        first_name: str = "",
        last_name: str = "",
    ) -> User:
        """
        Register a new user.

        Raises:
            ValueError: If the username or email is already taken

        Note:
            The avatar URL is derived from the name parts and role is "USER".
        """
        if await self.get_by_username(username) is not None:
            raise ValueError("Username already exists")
        if await self.get_by_email(email) is not None:
            raise ValueError("Email already exists")

        user = User(
            username=username,
            email=email,
            hashed_password=hashed_password,
            first_name=first_name,
            last_name=last_name,
            role="USER",
            avatar=build_avatar_url(first_name, last_name),
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_login(self, identifier: str) -> Optional[User]:
        """
        Find a user whose username or email equals ``identifier``.

        Username matches win when both exist.
        """
        stmt = select(User).where(
            or_(User.username == identifier, User.email == identifier)
        )
        result = await self.session.execute(stmt)
        users = list(result.scalars().all())
        for user in users:
            if user.username == identifier:
                return user
        return users[0] if users else None

    async def touch_last_login(self, user: User) -> None:
        user.last_login = utc_now_iso()
        await self.session.flush()

    async def add_analysis_to_history(self, user_id: str, analysis_id: str) -> None:
        user = await self.get_by_id(user_id)
        if user is None:
            return
        user.add_analysis_id(analysis_id)
        await self.session.flush()
