from fastapi import APIRouter
from api.poll_api import router as poll_router
from api.tag_api import router as tag_router


api_router = APIRouter()
api_router.include_router(poll_router, tags=["poll"])
api_router.include_router(tag_router, tags=["tag"])
