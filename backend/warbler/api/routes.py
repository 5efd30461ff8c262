from fastapi import APIRouter

from warbler.api.auth import router as auth_router
from warbler.api.comments import router as comments_router
from warbler.api.files import router as files_router
from warbler.api.messages import router as messages_router
from warbler.api.rooms import router as rooms_router
from warbler.api.tweets import router as tweets_router
from warbler.api.users import router as users_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(users_router)
router.include_router(rooms_router)
router.include_router(messages_router)
router.include_router(tweets_router)
router.include_router(comments_router)
router.include_router(files_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"status": "ok", "message": "Welcome to the Warbler API"}
