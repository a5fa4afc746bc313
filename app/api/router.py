from fastapi import APIRouter

from app.api.routers import audit_logs, auth, invites, users

api_router = APIRouter()


@api_router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(invites.router)
api_router.include_router(audit_logs.router)
