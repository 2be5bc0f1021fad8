# routers/__init__.py

from fastapi import APIRouter

from .auth import router as auth_router
from .roles import router as roles_router
from .parks import router as parks_router
from .trees import router as trees_router
from .activities import router as activities_router
from .instructors import router as instructors_router
from .volunteers import router as volunteers_router
from .warehouse import router as warehouse_router
from .advertising import router as advertising_router
from .sponsorship import router as sponsorship_router
from .hr import router as hr_router
from .exports import router as exports_router
from .uploads import router as uploads_router, public_router as public_objects_router
from .health import router as health_router


api_router = APIRouter()

# Auth & access control
api_router.include_router(auth_router)
api_router.include_router(roles_router)

# Management
api_router.include_router(parks_router)
api_router.include_router(trees_router)
api_router.include_router(activities_router)
api_router.include_router(instructors_router)

# Operations
api_router.include_router(volunteers_router)
api_router.include_router(warehouse_router)

# Marketing
api_router.include_router(advertising_router)
api_router.include_router(sponsorship_router)

# HR
api_router.include_router(hr_router)

# Files
api_router.include_router(exports_router)
api_router.include_router(uploads_router)
api_router.include_router(public_objects_router)

# Health
api_router.include_router(health_router)

__all__ = ["api_router"]
