import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import orders, websocket
from .config import settings
from .core.errors import OrderError
from .models.order import ApiResponse
from .utils.time import get_local_time

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="Branch POS Orders API")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(success=False, error=message).to_body(),
    )


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
   """Add response time header"""
   start_time = time.time()
   response = await call_next(request)
   process_time = time.time() - start_time
   response.headers["X-Process-Time"] = str(process_time)
   return response


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"][1:])
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    return error_response(400, "; ".join(problems) or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


@app.on_event("startup")
async def startup_event():
   logger.info(
       "Starting orders API (environment=%s, store=%s)",
       settings.ENVIRONMENT, settings.ORDER_STORE,
   )


app.include_router(orders.router)
app.include_router(websocket.router)


@app.get("/")
async def root():
    return {"message": "Orders API is running"}


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": get_local_time().isoformat()
    }
