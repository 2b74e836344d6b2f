from typing import Any

from fastapi import APIRouter, Depends

from cloudwise.api.http.deps import get_optional_user
from cloudwise.entities.core.user import User

router = APIRouter(prefix="/api/blog", tags=["blog"])


@router.get("/posts")
async def list_posts(user: User | None = Depends(get_optional_user)) -> dict[str, Any]:
    """Public listing; a valid credential only personalizes the response."""
    return {
        "posts": [],
        "authenticated": user is not None,
        "user_id": user.id if user else None,
    }
