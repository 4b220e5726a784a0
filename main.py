import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import init_db
from api.applications import router as applications_router
from api.gate import router as gate_router
from api.terms import router as terms_router
from api.users import router as users_router
from services.cache import TTLCache
from services.navigation_gate import GateCheckTracker

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Loan application state gate, eligibility rules and financial terms API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.dashboard_cache = TTLCache(settings.dashboard_cache_ttl_seconds, max_entries=settings.cache_max_entries)
app.state.gate_tracker = GateCheckTracker(settings.gate_tracker_ttl_seconds, max_entries=settings.cache_max_entries)

app.include_router(users_router)
app.include_router(applications_router)
app.include_router(gate_router)
app.include_router(terms_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
