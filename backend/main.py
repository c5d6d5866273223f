import logging
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from database.connection import get_database
from services.generation_chain import get_generation_chain
from api.routes import notes_router
from utils.helpers import setup_logging, get_system_info

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    try:
        await get_database()
        logger.info("✅ Database connected successfully")

        chain = get_generation_chain()
        logger.info(f"✅ Generation chain ready: {' -> '.join(chain.strategy_names)}")

        logger.info("🚀 Medical Note Generator API started successfully")

    except Exception as e:
        logger.error(f"❌ Startup failed: {e}")
        raise

    yield

    # Shutdown
    try:
        db = await get_database()
        await db.disconnect()
        logger.info("🛑 Medical Note Generator API shutdown complete")

    except Exception as e:
        logger.warning(f"⚠️ Shutdown warning: {e}")

# Create FastAPI application
app = FastAPI(
    title="Medical Note Generator API",
    description="SOAP note generation from encounter transcripts with provider fallback",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notes_router)

@app.get("/")
async def root():
    """Root endpoint with system information"""
    return {
        "message": "Medical Note Generator API",
        "status": "active",
        "system_info": get_system_info(),
        "generation_chain": get_generation_chain().strategy_names
    }

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        db = await get_database()
        await db.database.command("ping")

        return {
            "status": "healthy",
            "timestamp": get_system_info()["timestamp"],
            "services": {
                "database": "connected",
                "api": "active",
                "note_generation": "ready"
            }
        }
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "timestamp": get_system_info()["timestamp"],
                "error": str(e)
            }
        )

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
