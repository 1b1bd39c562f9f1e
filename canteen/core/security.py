"""Security utilities for password hashing and federated ID tokens."""

from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from canteen.core.config import settings
from canteen.core.errors import AuthError

pwd_context: CryptContext = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a plaintext password against its hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def verify_federated_token(token: str) -> dict[str, Any]:
    """Decode and validate an ID token issued by the federated provider."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.federated_jwt_secret,
            algorithms=[settings.federated_jwt_algorithm],
            audience=settings.federated_jwt_audience,
        )
    except JWTError as exc:
        raise AuthError("invalid-id-token") from exc

    if not payload.get("sub") or not payload.get("email"):
        raise AuthError("invalid-id-token")
    return payload
