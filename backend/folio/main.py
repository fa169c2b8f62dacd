# File: backend/folio/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from folio.core.config import settings
from folio.api.api import api_router
from folio.db.database import engine
from folio.db import models

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_db():
    try:
        logger.info("Creating database tables if they don't exist...")
        models.Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database initialization completed.")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")


# Initialize database
init_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/")
    def read_root():
        return {"status": "Folio API is running"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
