from datetime import timedelta
from email_validator import EmailNotValidError
from fastapi import APIRouter, HTTPException, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import validate_email
from sqlalchemy.orm import Session
import logging
from APIs.Core import pwd_context, authenticate_user, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES, get_db, get_current_user
from Schemas.Admin.UserSchema import CreateUser, UserOut
from Models.Admin.User import User, Role
from utils.access_control import create_audit_log, require_role, role_name
from utils.password_validator import validate_password_strength

logger = logging.getLogger(__name__)

userRoute = APIRouter(tags=["Users"])


def user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        document_id=user.document_id,
        username=user.username,
        email=user.email,
        role=role_name(user),
        registered_at=user.registered_at
    )


def create_account(db: Session, username: str, email: str, password: str, role: str, **profile) -> User:
    """
    Validate and add a new account to the session; the caller commits.

    Raises:
        HTTPException: 400 for a bad email, a taken username or email, a weak
            password or an unknown role
    """
    try:
        validate_email(email)
    except (EmailNotValidError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    if db.query(User).filter((User.username == username) | (User.email == email)).first():
        raise HTTPException(status_code=400, detail="Username or email already exists")

    is_valid, message = validate_password_strength(password)
    if not is_valid:
        raise HTTPException(status_code=400, detail=message)

    user_role = db.query(Role).filter(Role.name == role).first()
    if not user_role:
        raise HTTPException(status_code=400, detail=f"Unknown role '{role}'")

    new_user = User(
        username=username,
        email=email,
        hashed_password=pwd_context.hash(password),
        role_id=user_role.id,
        **profile
    )
    db.add(new_user)
    db.flush()
    return new_user


# --- Registration Endpoint ---
@userRoute.post("/register", response_model=UserOut, status_code=201)
async def register(
    user: CreateUser,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a user account with the given role. Admin only."""
    require_role(current_user)

    new_user = create_account(db, user.username, user.email, user.password, user.role)
    create_audit_log(db, current_user.id, "CREATE", "user", resource_id=new_user.document_id,
                     resource_name=new_user.username, details=f"role={user.role}", request=request)
    db.commit()
    db.refresh(new_user)

    logger.info(f"User '{new_user.username}' ({user.role}) registered by user {current_user.id}")
    return user_out(new_user)


# --- Login Endpoint ---
@userRoute.post("/login")
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = authenticate_user(form_data.username, form_data.password, db=db)
    if not user:
        logger.warning(f"Failed login for '{form_data.username}'")
        raise HTTPException(status_code=400, detail="Incorrect username or password")

    access_token = create_access_token(
        data={"sub": user.username, "role": role_name(user)},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "role": role_name(user)
    }


@userRoute.get("/users/me", response_model=UserOut)
async def read_current_user(current_user: User = Depends(get_current_user)):
    return user_out(current_user)
