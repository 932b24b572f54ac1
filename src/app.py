"""Storefront FastAPI application.

Processes commands synchronously via HTTP. Every storefront request is wrapped
in the storefront domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay of domain.toml is applied.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from storefront.domain import storefront
from storefront.utils.logging import add_context, clear_context

storefront.init()

_STOREFRONT_PREFIXES = ("/cart", "/checkout", "/orders", "/points", "/store")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Food ordering storefront: cart, checkout, orders and store panel",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the storefront domain context for storefront routes."""
    if request.url.path.startswith(_STOREFRONT_PREFIXES):
        add_context(path=request.url.path, user_id=request.headers.get("x-user-id"))
        try:
            with storefront.domain_context():
                response = await call_next(request)
        finally:
            clear_context()
        return response
    # Health check, docs
    return await call_next(request)


register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from storefront.api.routes import (  # noqa: E402
    cart_router,
    checkout_router,
    order_router,
    points_router,
    store_router,
)

app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(order_router)
app.include_router(points_router)
app.include_router(store_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": storefront.name})
