import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.authorization import AuthorizationError, resolve_session_context
from app.core.security import create_access_token, get_password_hash, verify_password
from app.core.validators import get_validation_message
from app.db import models
from app.db.session import get_db

logger = logging.getLogger("rentcar.auth")

router = APIRouter(tags=["Auth"])


class SignupRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        message = get_validation_message("email", value)
        if message:
            raise ValueError(message)
        return value.strip().lower()


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    role: str | None = None
    tenant_id: str | None = None


def _authenticate(db: Session, email: str, password: str) -> models.User:
    normalized = email.strip().lower()
    user = db.query(models.User).filter(func.lower(models.User.email) == normalized).first()
    if not user or not verify_password(password, user.password_hash):
        logger.info("login failed email=%s", normalized)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciales inválidas")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Usuario inactivo")
    return user


def _issue_token(db: Session, user: models.User) -> dict:
    try:
        context = resolve_session_context(db, user)
        role, tenant_id = context.role, context.tenant_id
    except AuthorizationError:
        # Token still issued; every tenant endpoint answers 403 until a membership exists.
        role, tenant_id = None, None
    token = create_access_token({"sub": user.id, "email": user.email, "role": role, "tenant_id": tenant_id})
    return {"access_token": token, "token_type": "bearer", "role": role, "tenant_id": tenant_id}


@router.post("/auth/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    exists = db.query(models.User).filter(func.lower(models.User.email) == payload.email).first()
    if exists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="El usuario ya está registrado")
    try:
        password_hash = get_password_hash(payload.password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    user = models.User(email=payload.email, password_hash=password_hash)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="El usuario ya está registrado")
    db.refresh(user)
    logger.info("user registered user_id=%s", user.id)
    return {"id": user.id, "email": user.email, "created_at": user.created_at}


@router.post("/auth/login", response_model=LoginResponse, summary="Login JSON (frontend)")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = _authenticate(db, payload.email, payload.password)
    return _issue_token(db, user)


@router.post(
    "/auth/token",
    response_model=LoginResponse,
    summary="Login para Swagger (OAuth2PasswordBearer)",
)
def login_swagger(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    Uso desde Swagger UI (botón Authorize): campos username (email) / password.
    """
    user = _authenticate(db, form_data.username, form_data.password)
    return _issue_token(db, user)
