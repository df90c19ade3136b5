import logging
from datetime import timedelta
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Depends, status, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import BaseModel, Field

from backend.utils.data_manager import DuplicateUser, UserStore
from backend.utils.security import create_access_token, decode_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()

# OAuth2PasswordBearer for token extraction
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# Pydantic models for data validation
class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    universityID: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginRequest(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: str
    name: str
    role: str


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut


def get_user_store(request: Request) -> UserStore:
    return request.app.state.users


def register_account(store: UserStore, form: RegisterRequest, role: str, label: str) -> Dict[str, Any]:
    try:
        return store.create(
            name=form.name,
            email=form.email,
            university_id=form.universityID,
            password_hash=hash_password(form.password),
            role=role,
        )
    except DuplicateUser as exc:
        if exc.field == "email":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{label} already exists")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="University ID already registered")


@router.post("/register", status_code=status.HTTP_201_CREATED, tags=["Authentication"])
async def register_user(form: RegisterRequest, store: UserStore = Depends(get_user_store)):
    register_account(store, form, role="user", label="User")
    return {"message": "User registered successfully"}


@router.post("/register-driver", status_code=status.HTTP_201_CREATED, tags=["Authentication"])
async def register_driver(form: RegisterRequest, store: UserStore = Depends(get_user_store)):
    register_account(store, form, role="driver", label="Driver")
    return {"message": "Driver registered successfully"}


@router.post("/login", response_model=LoginResponse, tags=["Authentication"])
async def login(form: LoginRequest, request: Request, store: UserStore = Depends(get_user_store)):
    user = store.find_by_email(form.email)
    if not user or not verify_password(form.password, user["password"]):
        logger.info("Failed login for %s", form.email)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")
    settings = request.app.state.settings
    token = create_access_token(
        data={"sub": user["id"], "name": user["name"], "role": user["role"]},
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )
    return {
        "token": token,
        "token_type": "bearer",
        "user": {"id": user["id"], "name": user["name"], "role": user["role"]},
    }


# Dependency to get the current user based on the token
async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> Dict[str, Any]:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    settings = request.app.state.settings
    try:
        payload = decode_access_token(token, settings.jwt_secret, settings.jwt_algorithm)
    except JWTError:
        raise credentials_exception
    user_id = payload.get("sub")
    role = payload.get("role")
    if user_id is None or role is None:
        raise credentials_exception

    user = request.app.state.users.get(user_id)
    if user is None:
        raise credentials_exception
    return {"id": user["id"], "name": user["name"], "role": user["role"]}


def require_role(*roles: str, detail: str = "Not authorized to access this resource"):
    def check_role(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if current_user["role"] not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user
    return check_role


@router.get("/me", response_model=UserOut, tags=["Authentication"])
async def read_me(current_user: Dict[str, Any] = Depends(get_current_user)):
    return current_user
