from fastapi import FastAPI

from deal_desk.entrypoints.http.exception_handlers import register_exception_handlers
from deal_desk.entrypoints.http.routes.deals import router as deals_router
from deal_desk.entrypoints.http.routes.health import router as health_router


def build_app() -> FastAPI:
    app = FastAPI(
        title="Deal Desk API",
        description="""
        Vehicle sale deal lifecycle and financial reconciliation.

        ## Features
        - Deals from draft through deposit, invoice, delivery and completion
        - Deposits and balance payments with numbered receipts
        - Invoices that can be voided and reissued
        - Part-exchanges, warranty and cancellation with stock compensation

        ## Dealer scope
        Every `/api` request must carry an `X-Dealer-Id` header. Requests
        without it are rejected with 401.

        ## Monetary values
        Request amounts may be decimal strings (e.g. "500.00") or JSON numbers;
        responses always carry decimal strings.

        ## Error Handling
        All errors return `{detail, code}` JSON bodies, plus `errors` for
        field validation and extra context where useful.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(deals_router, prefix="/api")

    return app


app = build_app()
