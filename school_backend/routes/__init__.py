from .admin import router as admin_router
from .auth import router as auth_router
from .index import router as index_router
from .parent import router as parent_router
from .staff import router as staff_router
from .student import router as student_router
from .teacher import router as teacher_router
from .users import router as users_router

routers = [
    index_router,
    auth_router,
    users_router,
    admin_router,
    student_router,
    teacher_router,
    staff_router,
    parent_router,
]

__all__ = ["routers"]
