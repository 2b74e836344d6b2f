from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from cloudwise.api.http.deps import get_db_session, require_role
from cloudwise.entities.core.user import User, UserRepository, UserRole

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=list[User])
def list_users(
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> list[User]:
    """List identities. Admins only."""
    return UserRepository(db).list_users(offset=offset, limit=limit)
