"""
Version 1 API: every resource router mounted under ``/api/v1``.
"""
from fastapi import APIRouter
import logging

from carmarket.api.v1.endpoints import auth, cars, favorites, offers, purchases, users

logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api/v1")

for _module in (auth, users, cars, offers, purchases, favorites):
    logger.trace("Mounting router %s", _module.router.prefix)
    api_router.include_router(_module.router)
