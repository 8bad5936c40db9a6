from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import CurrentUser, get_current_user
from ..models import User
from ..schemas import LoginRequest, LoginResponse, MessageResponse, ProfileOut, RegisterRequest
from ..services.auth import login_user, profile_of, register_user

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db_session)):
    register_user(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        pesel=payload.pesel,
        role=payload.role,
    )
    return MessageResponse(message="User registered")


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db_session)):
    return login_user(db, email=payload.email, password=payload.password)


@router.get("/me", response_model=ProfileOut)
def me(current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db_session)):
    user = db.get(User, current_user.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return profile_of(user, current_user.role)
