from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from receitas.config import settings
from receitas.services.postal_service import PostalLookupAdapter
from receitas.web.auth_routes import router as auth_router
from receitas.web.cep_routes import router as cep_router
from receitas.web.image_routes import router as image_router
from receitas.web.normalize_routes import router as normalize_router
from receitas.web.patient_routes import router as patient_router
from receitas.web.prescription_routes import router as prescription_router
from contextlib import asynccontextmanager
from pathlib import Path

import logging

_log_dir = Path(settings.LOG_DIR)
_log_dir.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.FileHandler(_log_dir / "app.log"), logging.StreamHandler()],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown events"""
    logger.info("[>>] Starting Receitas portal (backend: %s)", settings.api_base)
    app.state.postal_adapter = PostalLookupAdapter()
    logger.info("[OK] CEP lookup adapter ready")
    yield
    logger.info("[<<] Shutting down Receitas portal...")
    await app.state.postal_adapter.aclose()
    logger.info("[OK] HTTP clients closed")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Portal API for clinic prescription renewal requests",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Registra todas as exceções não tratadas"""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        str(exc),
        exc_info=True,
    )
    return PlainTextResponse(
        "Internal Server Error. Please contact support if the problem persists.",
        status_code=500,
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
)


# Health check endpoint
@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(cep_router)
app.include_router(normalize_router)
app.include_router(image_router)
app.include_router(patient_router)
app.include_router(prescription_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
