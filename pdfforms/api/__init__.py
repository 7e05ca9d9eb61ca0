"""API routes package."""

from fastapi import APIRouter

from pdfforms.api.fields import router as fields_router
from pdfforms.api.generate import router as generate_router
from pdfforms.api.identity import router as identity_router
from pdfforms.api.templates import router as templates_router

api_router = APIRouter()

api_router.include_router(templates_router)
api_router.include_router(fields_router)
api_router.include_router(identity_router)
api_router.include_router(generate_router)
