"""
User account routes: registration, project-scoped login and profile changes.
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...common.config import Settings, get_settings
from ...common.errors import (
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    RateLimitError,
    ServiceError,
)
from ...common.tracing import route_span
from ..auth import (
    check_login_rate_limit,
    create_access_token,
    hash_password,
    record_login_attempt,
    verify_password,
)
from ..db import get_db
from ..models import User
from ..schemas import (
    LoginResponse,
    MessageResponse,
    NameUpdate,
    NameUpdateResponse,
    PasswordUpdate,
    RegistrationResponse,
    UserCreate,
    UserLogin,
    UserOut,
)

router = APIRouter(prefix="/api/users", tags=["users"])
logger = logging.getLogger(__name__)


def find_user(db: Session, username_or_email: str):
    return db.query(User).filter(
        or_(User.username == username_or_email, User.email == username_or_email)
    ).first()


@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    with route_span(request, "register_user") as span:
        span.log("checking_existing_user")
        existing = db.query(User).filter(
            or_(User.username == payload.username, User.email == payload.email)
        ).first()
        if existing:
            span.set_error("user_already_exists")
            raise ConflictError("Username or email already exists")

        span.log("hashing_password")
        projects = payload.projects if payload.projects is not None else list(settings.DEFAULT_PROJECTS)
        new_user = User(
            name=payload.name,
            username=payload.username,
            email=payload.email,
            password=hash_password(payload.password),
            role=payload.role or "user",
            projects=projects
        )

        span.log("saving_user")
        try:
            db.add(new_user)
            db.commit()
            db.refresh(new_user)
        except IntegrityError as e:
            # Lost a race against a concurrent registration
            db.rollback()
            span.set_error("user_already_exists")
            raise ConflictError("Username or email already exists") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error registering new user {payload.username}: {e}")
            raise InternalError("Error registering new user") from e

        span.log("user_registered")
        logger.info("User registered: user_id=%s username=%s", new_user.id, new_user.username)
        return RegistrationResponse(message="User registered successfully", userId=new_user.id)


@router.post("/login", response_model=LoginResponse)
def login(
    payload: UserLogin,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    client_key = request.client.host if request.client else "unknown"

    with route_span(request, "user_login") as span:
        span.log("checking_rate_limit")
        is_limited, minutes_until_reset = check_login_rate_limit(
            client_key,
            db,
            settings.LOGIN_RATE_LIMIT_MAX_ATTEMPTS,
            settings.LOGIN_RATE_LIMIT_WINDOW_MINUTES
        )
        if is_limited:
            span.set_error("rate_limited")
            raise RateLimitError(
                f"Too many login attempts. Try again in {minutes_until_reset} "
                f"minute{'s' if minutes_until_reset != 1 else ''}"
            )

        span.log("finding_user")
        user = db.query(User).filter(User.email == payload.email).first()
        if not user:
            record_login_attempt(client_key, payload.email, False, db)
            span.set_error("user_not_found")
            raise NotFoundError("User not found")

        span.log("verifying_password")
        if not verify_password(payload.password, user.password):
            record_login_attempt(client_key, payload.email, False, db)
            span.set_error("invalid_credentials")
            raise AuthError("Invalid credentials")

        span.log("checking_project_access")
        if payload.project not in (user.projects or []):
            record_login_attempt(client_key, payload.email, False, db)
            span.set_error("project_access_denied")
            raise AuthError("You don't have access to this project", status_code=status.HTTP_403_FORBIDDEN)

        project_url = settings.PROJECT_URLS.get(payload.project)
        if not project_url:
            record_login_attempt(client_key, payload.email, False, db)
            span.set_error("project_url_not_found")
            raise NotFoundError("Project URL not found")

        record_login_attempt(client_key, payload.email, True, db)
        span.log("login_successful")
        token = create_access_token(user.username, payload.project, settings)
        return LoginResponse(username=user.username, project_url=project_url, access_token=token)


@router.put("/update-password/{username_or_email}", response_model=MessageResponse)
def update_password(username_or_email: str, payload: PasswordUpdate, db: Session = Depends(get_db)):
    try:
        user = find_user(db, username_or_email)
        if not user:
            raise NotFoundError("User not found")

        user.password = hash_password(payload.new_password)
        db.commit()
        logger.info("Password updated: user_id=%s", user.id)
        return MessageResponse(message="Password updated successfully")
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating password: {e}")
        raise InternalError("Error updating password") from e


@router.put("/update-name/{username_or_email}", response_model=NameUpdateResponse)
def update_name(username_or_email: str, payload: NameUpdate, db: Session = Depends(get_db)):
    try:
        user = find_user(db, username_or_email)
        if not user:
            raise NotFoundError("User not found")

        user.name = payload.new_name
        db.commit()
        db.refresh(user)
        return NameUpdateResponse(
            message="Name updated successfully",
            updatedUser=UserOut.model_validate(user)
        )
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating name: {e}")
        raise InternalError("Error updating name") from e


@router.delete("/delete-user/{username_or_email}", response_model=MessageResponse)
def delete_user(username_or_email: str, db: Session = Depends(get_db)):
    try:
        user = find_user(db, username_or_email)
        if not user:
            raise NotFoundError("User not found")

        user_id, username = user.id, user.username
        db.delete(user)
        db.commit()
        logger.info("User deleted: user_id=%s username=%s", user_id, username)
        return MessageResponse(message="User deleted successfully")
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting user: {e}")
        raise InternalError("Error deleting user") from e
