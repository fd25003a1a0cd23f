"""Placeholder pages.

The real UI is out of scope; these shells exist so that the route guard
has navigations to guard: ``/`` is the protected home, ``/login`` and
``/register`` are the public auth pages.
"""

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

_SHELL = "<!doctype html><html><head><title>{title}</title></head><body data-page=\"{page}\"></body></html>"


@router.get("/", response_class=HTMLResponse)
async def home():
    return _SHELL.format(title="chatgate", page="home")


@router.get("/login", response_class=HTMLResponse)
async def login_page():
    return _SHELL.format(title="Log in · chatgate", page="login")


@router.get("/register", response_class=HTMLResponse)
async def register_page():
    return _SHELL.format(title="Register · chatgate", page="register")
