from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from webauth.dependencies import redirect_if_authenticated, require_auth_page

WEB_DIR = Path(__file__).resolve().parent.parent / "web"

router = APIRouter(tags=["pages"], include_in_schema=False)


@router.get("/")
async def index():
    return FileResponse(WEB_DIR / "index.html")


@router.get("/login", dependencies=[Depends(redirect_if_authenticated)])
async def login_page():
    return FileResponse(WEB_DIR / "login.html")


@router.get("/register", dependencies=[Depends(redirect_if_authenticated)])
async def register_page():
    return FileResponse(WEB_DIR / "register.html")


@router.get("/profile", dependencies=[Depends(require_auth_page)])
async def profile_page():
    return FileResponse(WEB_DIR / "profile.html")
