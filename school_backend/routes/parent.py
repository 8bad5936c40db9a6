from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import CurrentUser, require_roles
from ..models import Role
from ..services import parent as parent_service
from ..services.common import require_own_child
from ..services.student import scholarships_overview

router = APIRouter(prefix="/api/parent", tags=["Parent"])

allow_parent = require_roles(Role.PARENT)


def get_child_id(
    student_id: int | None = Query(default=None, alias="studentId"),
    db: Session = Depends(get_db_session),
    current_user: CurrentUser = Depends(allow_parent),
) -> int:
    return require_own_child(db, current_user, student_id)


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db_session), current_user: CurrentUser = Depends(allow_parent)):
    return parent_service.dashboard(db, current_user.user_id)


@router.get("/schedule")
def schedule(student_id: int = Depends(get_child_id), db: Session = Depends(get_db_session)):
    return parent_service.schedule(db, student_id)


@router.get("/grades")
def grades(student_id: int = Depends(get_child_id), db: Session = Depends(get_db_session)):
    return parent_service.grades(db, student_id)


@router.get("/courses")
def courses(student_id: int = Depends(get_child_id), db: Session = Depends(get_db_session)):
    return parent_service.courses(db, student_id)


@router.get("/scholarships")
def scholarships(student_id: int = Depends(get_child_id), db: Session = Depends(get_db_session)):
    return scholarships_overview(db, student_id)
