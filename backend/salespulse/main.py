import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import init_db
from .routers import dashboard, goals
from .schemas import HealthResponse
from .services.refresher import DashboardHub
from .services.sales_client import SalesSourceClient

VERSION = "0.1.0"

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("SALESPULSE_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ───────────────────────────────────────────────────────────────
    init_db()
    app.state.sales_client = SalesSourceClient()
    app.state.hub = DashboardHub()

    yield

    # ── Shutdown: stop periodic refreshes ─────────────────────────────────────
    await app.state.hub.close_all()


app = FastAPI(
    title="SalesPulse",
    description="Sales aggregation, running totals and revenue-goal progress.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dashboard.router)
app.include_router(goals.router)


@app.get("/health", response_model=HealthResponse, tags=["meta"])
def health():
    return {"status": "ok", "version": VERSION}
