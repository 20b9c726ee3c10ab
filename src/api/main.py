"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from src.api.endpoints.payments import payments_api
from src.error_handler import ErrorHandler
from src.integrations.contracts.interfaces import PaymentsProviderClient
from src.reconciliation.reconciler import TransactionReconciler
from src.utils.config_loader import PaymentsConfig, load_payments_config

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================

def _build_store(cfg: PaymentsConfig):
    # Use Redis when REDIS_URL is set, else the in-process store
    if cfg.redis_url:
        from src.database.transactions_real import RedisTransactionStore

        return RedisTransactionStore(url=cfg.redis_url, ttl_seconds=cfg.store.transaction_ttl_seconds)

    from src.database.transactions import TransactionStore

    return TransactionStore(ttl_seconds=cfg.store.transaction_ttl_seconds)


def _build_client(cfg: PaymentsConfig) -> PaymentsProviderClient:
    if cfg.use_real_provider:
        from src.integrations.clients.real_http.payments import LipiaPaymentsClient

        if not cfg.api_key:
            logger.warning("INTEGRATIONS_MODE is real but LIPIA_API_KEY is empty")
        return LipiaPaymentsClient(
            api_key=cfg.api_key,
            base_url=cfg.provider.base_url,
            stk_push_path=cfg.provider.stk_push_path,
            status_path=cfg.provider.status_path,
            timeout_seconds=cfg.provider.timeout_seconds,
        )

    from src.integrations.clients.mocks.payments import LipiaMockClient

    logger.info("Using mock Lipia client (set LIPIA_API_KEY or INTEGRATIONS_MODE=real for live calls)")
    return LipiaMockClient()


def create_app(
    cfg: Optional[PaymentsConfig] = None,
    store=None,
    client: Optional[PaymentsProviderClient] = None,
) -> FastAPI:
    cfg = cfg or load_payments_config()
    if not cfg.public_base_url:
        logger.warning("PUBLIC_BASE_URL/NGROK_URL not set; provider callbacks will not reach this server")

    app = FastAPI(
        title="Lipia STK Push Relay",
        description="Initiates M-Pesa STK push payments, receives provider callbacks and reports payment status",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def skip_tunnel_browser_warning(request: Request, call_next):
        response = await call_next(request)
        response.headers["ngrok-skip-browser-warning"] = "true"
        return response

    error_handler = ErrorHandler()

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        messages = [f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}" for err in exc.errors()]
        return JSONResponse(status_code=400, content={"success": False, "message": "; ".join(messages)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        return JSONResponse(
            status_code=500,
            content=error_handler.handle_exception(exc, context={"path": request.url.path}),
        )

    app.state.config = cfg
    app.state.store = store if store is not None else _build_store(cfg)
    app.state.reconciler = TransactionReconciler(
        store=app.state.store,
        client=client if client is not None else _build_client(cfg),
        callback_url=cfg.callback_url,
        pending_fallback=cfg.callback.pending_fallback,
        provider_deadline_seconds=cfg.provider.timeout_seconds,
    )

    # Register payments API router
    app.include_router(payments_api, prefix="/api", tags=["Payments"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check (transaction store)."""
        return {
            "status": "healthy",
            "store": {"type": type(app.state.store).__name__, "connected": app.state.store.ping()},
            "provider": "lipia" if cfg.use_real_provider else "mock",
            "timestamp": datetime.now().isoformat(),
        }

    # Static hosting goes last so it never shadows the API routes
    static_dir = Path(cfg.server.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    else:
        logger.info("Static directory %s not found; static hosting disabled", static_dir)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.api.main:app", host="0.0.0.0", port=3000, reload=False)
