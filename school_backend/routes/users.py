from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import require_roles
from ..models import Role
from ..schemas import UserCreateRequest, UserOut, UserUpdateRequest
from ..services.users import create_user, delete_user_cascade, get_user, list_users, update_user

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    dependencies=[Depends(require_roles(Role.ADMIN))],
)


@router.get("/", response_model=list[UserOut])
def all_users(db: Session = Depends(get_db_session)):
    return list_users(db)


@router.get("/{user_id}", response_model=UserOut)
def one_user(user_id: int, db: Session = Depends(get_db_session)):
    return get_user(db, user_id)


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def add_user(payload: UserCreateRequest, db: Session = Depends(get_db_session)):
    return create_user(db, payload)


@router.put("/{user_id}", response_model=UserOut)
def edit_user(user_id: int, payload: UserUpdateRequest, db: Session = Depends(get_db_session)):
    return update_user(db, user_id, payload)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_user(user_id: int, db: Session = Depends(get_db_session)):
    delete_user_cascade(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
