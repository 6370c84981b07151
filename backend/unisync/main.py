"""
Point d'entrée principal de l'API UniSync.
Démarrage : uvicorn unisync.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from unisync.config import settings
from unisync.database import init_db
from unisync.exceptions import UniSyncError
from unisync.routers import qr_codes, sync
from unisync.schemas.common import error_response

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie de l'application : crée les tables manquantes au démarrage."""
    init_db()
    yield


app = FastAPI(
    title="UniSync API",
    description="API de coordination universitaire : synchronisation offline et présences par QR code",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS: sans CORS_ORIGINS, autorise tous les ports localhost (développement).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=None if settings.CORS_ORIGINS else r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)


app.include_router(sync.router)
app.include_router(qr_codes.router)


@app.exception_handler(UniSyncError)
async def unisync_error_handler(request: Request, exc: UniSyncError) -> JSONResponse:
    """Erreurs métier levées par les services → enveloppe avec le code HTTP de l'exception."""
    if exc.status_code >= 500:
        logger.error("Erreur interne sur %s %s : %s", request.method, request.url.path, exc.error)
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.error, exc.message))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Corps de requête invalide → 400 (et non 422) : l'app mobile ne distingue
    que 400 / 401 / 403 / 404 / 500.
    """
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content=error_response("Invalid request body", details))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Cannot {request.method} {request.url.path}"
        return JSONResponse(status_code=404, content=error_response("Endpoint not found", message))
    return JSONResponse(status_code=exc.status_code, content=error_response(str(exc.detail)))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées pour garantir que la réponse 500
    passe bien par CORSMiddleware et respecte l'enveloppe.
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response("Internal server error", "Une erreur interne est survenue."),
    )


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"success": True, "message": "UniSync API is running", "version": "0.1.0"}
