import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from planora.api.routers.itineraries import router as itineraries_router
from planora.core.settings import get_settings

load_dotenv()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    application = FastAPI(title="Planora")

    allowed_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    # e.g. ALLOWED_ORIGINS=https://planora.example.com
    extra_origins = os.getenv("ALLOWED_ORIGINS", "")
    if extra_origins:
        allowed_origins.extend(
            [origin.strip() for origin in extra_origins.split(",") if origin.strip()]
        )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    application.include_router(itineraries_router)

    @application.get("/healthz")
    def healthz():
        return {"status": "ok"}

    return application


app = create_app()
