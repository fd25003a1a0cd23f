"""API route aggregation.

All routers registered here get mounted in main.py. JSON API routes
(/auth, /chat, /health) are exempt from the route guard; the page
router is what the guard protects.
"""

from fastapi import APIRouter

from chatgate.api.auth import router as auth_router
from chatgate.api.chat import router as chat_router
from chatgate.api.health import router as health_router
from chatgate.api.pages import router as pages_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(chat_router, tags=["chat"])

page_router = APIRouter()
page_router.include_router(pages_router, include_in_schema=False)
