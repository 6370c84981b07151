"""
Authentification par token JWT (Bearer) et contrôle des rôles.

Le token porte l'identifiant de l'utilisateur (claim `userId`) ; le document
`users/{userId}` est relu à chaque requête pour obtenir son rôle.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from unisync.config import settings
from unisync.exceptions import AuthnError, AuthzError
from unisync.store import DocumentStore, get_store

ROLES_LECTURER = ("LECTURER", "PROGRAM_COORDINATOR", "ADMIN")
ROLES_STUDENT = ("STUDENT",)

# auto_error=False : l'absence de token est signalée par AuthnError (enveloppe 401)
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    """Émet un token signé pour l'utilisateur."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    payload = {"userId": user_id, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str:
    """Vérifie le token et retourne l'identifiant utilisateur. Lève AuthnError sinon."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise AuthnError("Token expired")
    except JWTError:
        raise AuthnError("Invalid token")

    user_id = payload.get("userId")
    if not user_id:
        raise AuthnError("Invalid token")
    return user_id


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: DocumentStore = Depends(get_store),
) -> dict:
    """Dépendance FastAPI: utilisateur authentifié (document `users` + son id)."""
    if credentials is None:
        raise AuthnError("Authentication token required")

    user_id = decode_access_token(credentials.credentials)
    user = store.get("users", user_id)
    if user is None:
        raise AuthnError("User not found")
    return {**user, "id": user_id}


def require_role(*roles: str):
    """Dépendance FastAPI: exige que l'utilisateur connecté ait l'un des rôles donnés."""

    def checker(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") not in roles:
            raise AuthzError("Insufficient permissions")
        return user

    return checker
