import time

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, bool | int]:
    return {"ok": True, "ts": int(time.time() * 1000)}


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "UBC Tennis Booker is running."
