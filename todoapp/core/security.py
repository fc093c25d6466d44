from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from todoapp.core.config import settings

ALGORITHM = "HS256"


def _encode(payload: dict, minutes: int) -> str:
    payload = dict(payload)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def create_access_token(user_id: int, email: str) -> str:
    #crée un token d'accès JWT de 15 minutes
    return _encode({"user_id": user_id, "email": email, "type": "access"}, settings.JWT_EXPIRE_MIN)


def create_refresh_token(user_id: int, email: str) -> str:
    #crée un token de rafraîchissement JWT au bout de 30 jours
    return _encode({"user_id": user_id, "email": email, "type": "refresh"}, settings.JWT_REFRESH_EXPIRE_MIN)


def create_verification_token(email: str) -> str:
    # lien de vérification envoyé à l'inscription
    return _encode({"email": email, "type": "verify"}, settings.JWT_VERIFY_EXPIRE_MIN)


def verify_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        return None


def decode_token(token: str) -> Optional[int]:
    """Retourne l'user_id d'un token d'accès, None sinon"""
    payload = verify_token(token)
    if payload is None or payload.get("type") != "access":
        return None
    return payload.get("user_id")
