from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
import logging

from todoapp.core.database import get_db
from todoapp.core.deps import get_current_user
from todoapp.core.security import (
    create_access_token,
    create_refresh_token,
    create_verification_token,
    verify_token,
)
from todoapp.models.user import User
from todoapp.schemas.user import (
    UserCreate,
    UserResponse,
    RegisterResponse,
    LoginRequest,
    TokenResponse,
    MessageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Créer un nouvel utilisateur (non vérifié)"""

    # Vérifie si l'email existe déjà
    if db.query(User).filter(User.email == user_data.email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    # Vérifie si le username existe déjà
    if db.query(User).filter(User.username == user_data.username).first():
        raise HTTPException(status_code=400, detail="Username already taken")

    new_user = User(
        name=user_data.name,
        email=user_data.email,
        username=user_data.username,
        is_verified=False,
    )
    new_user.set_password(user_data.password)
    new_user.verification_token = create_verification_token(new_user.email)

    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    # Pas d'envoi de mail: le lien est juste loggé
    logger.info(f"verification link for {new_user.email}: /users/verify/{new_user.verification_token}")

    return {
        "id": new_user.id,
        "name": new_user.name,
        "email": new_user.email,
        "username": new_user.username,
        "is_verified": False,
        "token": create_access_token(new_user.id, new_user.email),
    }


@router.post("/login", response_model=TokenResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Se connecter avec email ou username et recevoir les tokens"""

    user = db.query(User).filter(
        or_(User.email == credentials.identifier, User.username == credentials.identifier)
    ).first()
    if not user or not user.verify_password(credentials.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {
        "access_token": create_access_token(user.id, user.email),
        "refresh_token": create_refresh_token(user.id, user.email),
        "token_type": "bearer"
    }


@router.post("/refresh", response_model=TokenResponse)
def refresh(refresh_token: str, db: Session = Depends(get_db)):
    """Utiliser un refresh_token pour obtenir un nouvel access_token"""

    payload = verify_token(refresh_token)
    if not payload or payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = db.query(User).filter(User.id == payload.get("user_id")).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return {
        "access_token": create_access_token(user.id, user.email),
        "refresh_token": refresh_token,
        "token_type": "bearer"
    }


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/verify/{token}", response_model=MessageResponse)
def verify_email(token: str, db: Session = Depends(get_db)):
    payload = verify_token(token)
    if not payload or payload.get("type") != "verify":
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")

    user = db.query(User).filter(
        User.email == payload.get("email"),
        User.verification_token == token
    ).first()
    if not user:
        raise HTTPException(status_code=400, detail="Invalid verification token")

    user.is_verified = True
    user.verification_token = None
    db.commit()

    return {"message": "Email verified successfully"}
