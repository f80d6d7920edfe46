import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rotahub.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="RotaHub API")

from fastapi.middleware.cors import CORSMiddleware
from rotahub.errors import RecordNotFound, ValidationError
from rotahub.routers import contacts, cron, events, rotas

if settings.cors_origins():
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.include_router(events.router)
app.include_router(rotas.router)
app.include_router(contacts.router)
app.include_router(cron.router)


@app.exception_handler(ValidationError)
def validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RecordNotFound)
def record_not_found(request: Request, exc: RecordNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.get("/health")
def health():
    return {"status": "ok"}
