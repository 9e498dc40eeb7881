from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from moneyflow.core.exceptions import UnauthorizedException
from moneyflow.core.logging import set_user_context
from moneyflow.core.security import extract_user_id
from moneyflow.database import get_db
from moneyflow.models.user import User
from moneyflow.repositories.user_repository import UserRepository

# auto_error off so a missing header gets the same 401 as a bad token
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to a User, provisioning one on first sight.

    The user id is attached to every log line emitted while serving the request.

    Raises:
        HTTPException 401: If the header is missing or the token doesn't verify
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        auth_user_id = extract_user_id(credentials.credentials)
    except UnauthorizedException as e:
        raise _unauthorized(str(e))

    user = UserRepository(db).get_or_create_by_auth_id(auth_user_id)
    set_user_context(user.id)
    return user
