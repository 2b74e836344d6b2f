"""User repository."""

from datetime import datetime

from sqlmodel import Session, select

from cloudwise.entities.core.user.entity import User
from cloudwise.entities.core.user.table import UserTable


class UserRepository:
    """Data-access layer for users.

    Write methods flush and commit the session they were given.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> User | None:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def get_by_auth0_id(self, auth0_id: str) -> User | None:
        statement = select(UserTable).where(UserTable.auth0_id == auth0_id)
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def create(self, user: User) -> User:
        """Insert a user. Raises IntegrityError if the subject already exists."""
        data = user.model_dump()
        data["role"] = user.role.value
        row = UserTable.model_validate(data)
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        return User.model_validate(row, from_attributes=True)

    def touch_last_login(self, user_id: str, when: datetime) -> User | None:
        """Set ``last_login``; no other column is written."""
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        row.last_login = when
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        return User.model_validate(row, from_attributes=True)

    def list_users(self, offset: int = 0, limit: int = 100) -> list[User]:
        statement = (
            select(UserTable).order_by(UserTable.created_at).offset(offset).limit(limit)
        )
        return [
            User.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement).all()
        ]
