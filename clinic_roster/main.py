from contextlib import asynccontextmanager

from fastapi import FastAPI
from clinic_roster.core.config import settings
from clinic_roster.core.redis import redis_client
from clinic_roster.db.session import init_db
from clinic_roster.middleware.log_middleware import LogMiddleware

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.CREATE_TABLES_ON_STARTUP:
        await init_db()
    yield
    await redis_client.close()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

from fastapi.middleware.cors import CORSMiddleware

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LogMiddleware)

@app.get("/")
async def root():
    return {"message": "Welcome to Clinic Roster API"}

from clinic_roster.api.api import api_router
app.include_router(api_router, prefix=settings.API_V1_STR)
