from collections.abc import Callable
from datetime import datetime

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from cloudwise.core.errors import InternalError
from cloudwise.core.models.claims import VerifiedTokenClaims
from cloudwise.entities.core._base import utc_now
from cloudwise.entities.core.user import User, UserRepository


class IdentityResolverService:
    """Maps a verified token subject onto a local user, creating it on first sight."""

    def __init__(
        self,
        db_session: Session,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._db_session = db_session
        self._user_repo = UserRepository(db_session)
        self._clock = clock

    async def resolve_async(self, claims: VerifiedTokenClaims) -> User:
        """Run :meth:`resolve` on the threadpool.

        The worker thread is not abandoned when the awaiting request is
        cancelled, so a started insert or update still commits.
        """
        return await run_in_threadpool(self.resolve, claims)

    def resolve(self, claims: VerifiedTokenClaims) -> User:
        """Return the user for ``claims.subject``, creating it when unseen.

        Existing users only get ``last_login`` refreshed. Concurrent first
        requests for one subject are settled by the unique constraint on
        ``auth0_id``: the loser's insert fails, it rolls back and takes the
        lookup path instead of creating a duplicate.

        Raises:
            InternalError: on any persistence failure.
        """
        subject = claims.subject
        try:
            user = self._user_repo.get_by_auth0_id(subject)
            if user is None:
                created = self._create(claims)
                if created is not None:
                    return created
                user = self._user_repo.get_by_auth0_id(subject)
                if user is None:
                    raise InternalError("Identity vanished after a conflicting insert")

            refreshed = self._user_repo.touch_last_login(user.id, self._clock())
            if refreshed is None:
                raise InternalError("Identity vanished during refresh")
            return refreshed
        except SQLAlchemyError as exc:
            self._db_session.rollback()
            raise InternalError(f"Failed to resolve identity: {exc}") from exc

    def _create(self, claims: VerifiedTokenClaims) -> User | None:
        """Insert a new user; returns None when another request won the race."""
        new_user = User(
            auth0_id=claims.subject,
            email=claims.email,
            first_name=claims.given_name,
            last_name=claims.family_name,
            picture=claims.picture,
            last_login=self._clock(),
        )
        try:
            created = self._user_repo.create(new_user)
        except IntegrityError:
            self._db_session.rollback()
            logger.bind(subject=claims.subject).info("identity.create_conflict")
            return None

        logger.bind(user_id=created.id, subject=created.auth0_id).info("identity.created")
        return created
