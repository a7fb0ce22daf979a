from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from app.core.config import settings
from app.core.context import AppContext, build_context
from app.routers import alerts, auth, goals, health, reports, scheduler, transactions
from app.utils.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(context: Optional[AppContext] = None, run_scheduler: Optional[bool] = None) -> FastAPI:
    if run_scheduler is None:
        run_scheduler = settings.SCHEDULER_ENABLED

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: build clients once, then start the alert jobs
        ctx = context or build_context(settings)
        app.state.context = ctx
        if run_scheduler:
            logger.info("Starting scheduler...")
            start_scheduler(ctx)
        yield
        # Shutdown: stop the jobs before closing clients
        if run_scheduler:
            logger.info("Stopping scheduler...")
            stop_scheduler()
        if context is None:
            ctx.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:8000",
            "http://localhost:8081",
        ],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    app.include_router(health.router, prefix=f"{settings.API_PREFIX}", tags=["Health"])  # /api/health
    app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])
    app.include_router(transactions.router, prefix=f"{settings.API_PREFIX}/transactions", tags=["Transactions"])
    app.include_router(goals.router, prefix=f"{settings.API_PREFIX}/goals", tags=["Goals"])
    app.include_router(alerts.router, prefix=f"{settings.API_PREFIX}/alerts", tags=["Alerts"])
    app.include_router(reports.router, prefix=f"{settings.API_PREFIX}/reports", tags=["Reports"])
    app.include_router(scheduler.router, prefix=f"{settings.API_PREFIX}/scheduler", tags=["Scheduler"])
    return app


app = create_app()
