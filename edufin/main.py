from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from edufin.api.v1.applications.router import admin_router as admin_applications_router
from edufin.api.v1.applications.router import parent_router as parent_applications_router
from edufin.api.v1.auth.router import router as auth_router
from edufin.api.v1.emi_plans.router import router as emi_plans_router
from edufin.api.v1.installments.router import router as installments_router
from edufin.api.v1.institutions.router import admin_router as admin_institutions_router
from edufin.api.v1.institutions.router import router as institutions_router
from edufin.api.v1.onboarding.router import router as onboarding_router
from edufin.core.logging import clear_request_context, configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="EduFin EMI Backend")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def reset_log_context(request: Request, call_next):
        # get_current_user binds user/path per request; drop whatever the last request left
        clear_request_context()
        return await call_next(request)

    # Routers
    app.include_router(auth_router)
    app.include_router(emi_plans_router)
    app.include_router(onboarding_router)
    app.include_router(parent_applications_router)
    app.include_router(installments_router)
    app.include_router(admin_applications_router)
    app.include_router(admin_institutions_router)
    app.include_router(institutions_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
