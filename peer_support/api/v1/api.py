from fastapi import APIRouter
from peer_support.api.v1.endpoints import auth, users, groups, professionals, chat

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(groups.router, prefix="/groups", tags=["groups"])
api_router.include_router(professionals.router, prefix="/professionals", tags=["professionals"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
