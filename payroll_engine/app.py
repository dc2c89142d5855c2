import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_engine.logging_config import configure_logging
from payroll_engine.routes import attendance, calendar, payroll


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Payroll Computation Engine", version="0.1.0")

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(payroll.router, prefix="/api")
    app.include_router(payroll.cron_router, prefix="/api")
    app.include_router(calendar.router, prefix="/api")
    app.include_router(attendance.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Payroll Computation Engine",
                "docs": "/docs",
                "health": "/api/payroll/should-generate",
            }
        )

    return app


app = create_app()
