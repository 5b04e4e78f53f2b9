"""
Pharma Field Sales - API Backend

Start with:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from config import db, client, CORS_ORIGINS
from services.api_response import fail
from services.errors import PharmaError

# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("pharma_field_sales")

app = FastAPI(
    title="Pharma Field Sales",
    description="MR visit reporting, orders, targets and admin review",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== ERROR ENVELOPE ====================

@app.exception_handler(PharmaError)
async def pharma_error_handler(request: Request, exc: PharmaError):
    if exc.status_code >= 500:
        logger.error(f"[ERROR] {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=fail(str(exc.detail)))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", []) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else (first.get("msg") or "Invalid request")
    return JSONResponse(status_code=400, content=fail(message, data={"errors": len(errors)}))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"[ERROR] unhandled on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=fail("Internal server error"))


# ==================== ROUTES ====================

from routes import auth, users, mr_requests, doctors, products, visits, orders, targets, dashboard

app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(mr_requests.router, prefix="/api")
app.include_router(doctors.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(visits.router, prefix="/api")
app.include_router(orders.router, prefix="/api")
app.include_router(targets.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": "Pharma Field Sales API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


@app.get("/api/health")
async def health():
    return {"status": "healthy"}


# ==================== STARTUP / SHUTDOWN ====================

@app.on_event("startup")
async def startup():
    logger.info("Pharma Field Sales API starting...")

    await db.users.create_index("email", unique=True)
    await db.users.create_index("employee_id", unique=True, sparse=True)
    await db.products.create_index("product_id", unique=True, sparse=True)
    await db.visit_reports.create_index("mr_id")
    await db.visit_reports.create_index("visit_date")
    await db.mr_requests.create_index("status")
    await db.sessions.create_index("token")
    await db.targets.create_index("mr_id")

    logger.info("Indexes created")


@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
