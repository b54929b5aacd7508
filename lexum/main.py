# main.py

import os
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI
from dotenv import load_dotenv
from fastapi.middleware.cors import CORSMiddleware

from lexum.routers import today_router, practice_router, recommendation_router, status_router
from lexum.repositories.background_writes import BackgroundWrites
from lexum.services.ai_service import AIService
from lexum.tasks.dispatcher import dispatcher
from lexum.logging_config import setup_logger

load_dotenv()

logger = setup_logger(__name__, "app.log")


@asynccontextmanager
async def lifespan(app: FastAPI):
    dispatcher.start()
    app.state.dispatcher = dispatcher
    app.state.ai_service = AIService()
    app.state.background_writes = BackgroundWrites()
    logger.info("✅ Event dispatcher and AI client ready")

    yield

    logger.info(f"⏹️ Shutting down application at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}...")
    await dispatcher.drain()
    await app.state.ai_service.close()


app = FastAPI(lifespan=lifespan)

origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


# Include Routers
app.include_router(router=today_router.router, prefix='/api/today', tags=['Today'])
app.include_router(router=practice_router.router, prefix='/api/practice', tags=['Practice'])
app.include_router(router=recommendation_router.router, prefix='/api/recommendations', tags=['Recommendations'])
app.include_router(router=status_router.router, prefix='/api/status', tags=['Status'])
