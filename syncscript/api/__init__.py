from fastapi import APIRouter

from syncscript.api import annotations, sources, uploads, users, vaults

api_router = APIRouter()
api_router.include_router(users.router)
api_router.include_router(vaults.router)
api_router.include_router(sources.router)
api_router.include_router(annotations.router)
api_router.include_router(uploads.router)
