import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from splitledger.api.v1.routes.balances import router as balances_router
from splitledger.api.v1.routes.system import router as system_router
from splitledger.core.config import settings
from splitledger.core.db_check import wait_for_db
from splitledger.core.errors import DataAccessError, InvalidScopeError, NotFoundError
from splitledger.core.logging import setup_logging
from splitledger.db.session import engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    await wait_for_db(engine, settings.DB_CONNECT_RETRIES, settings.DB_CONNECT_DELAY)
    yield
    await engine.dispose()


app = FastAPI(title="Splitledger Balance Engine", lifespan=lifespan)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DataAccessError)
async def data_access_handler(request: Request, exc: DataAccessError):
    logger.error("Ledger read failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Balances are temporarily unavailable"})


@app.exception_handler(InvalidScopeError)
async def bad_scope_handler(request: Request, exc: InvalidScopeError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/")
async def root():
    return {"message": "Splitledger balance engine is live"}

app.include_router(system_router, prefix="/api/v1/system")
app.include_router(balances_router, prefix="/api/v1/balances")
