"""Bearer token checks.

Tokens are minted by an identity provider that shares SECRET_KEY. moneyflow
never issues tokens; it verifies them and reads the subject.
"""

from jose import ExpiredSignatureError, JWTError, jwt
from moneyflow.config import settings
from moneyflow.core.exceptions import UnauthorizedException

# Claim -> error detail when absent
_REQUIRED_CLAIMS = {
    "exp": "Token missing expiration",
    "sub": "Token missing user identifier",
}


def decode_jwt(token: str) -> dict:
    """
    Verify signature and expiry, then require the claims moneyflow relies on.

    Raises:
        UnauthorizedException: If token invalid, expired, or missing a required claim
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthorizedException("Token expired")
    except JWTError as e:
        raise UnauthorizedException(f"Invalid token: {e}")

    for claim, detail in _REQUIRED_CLAIMS.items():
        if payload.get(claim) is None:
            raise UnauthorizedException(detail)
    return payload


def extract_user_id(token: str) -> str:
    """The 'sub' claim, stored as User.auth_user_id"""
    return str(decode_jwt(token)["sub"])
