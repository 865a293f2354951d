# API v1 routes
from fastapi import APIRouter

from fieldperm.api.v1 import permissions

router = APIRouter()

router.include_router(permissions.router, prefix="/tables", tags=["Field Permissions"])
