import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from .database import get_db
from .routers import (
    coaches,
    group_courses,
    points,
    reservations,
    slots,
    users,
)
from .services.errors import DomainException

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Coaching Booking API")

app.include_router(users.router)
app.include_router(coaches.router)
app.include_router(slots.router)
app.include_router(reservations.router)
app.include_router(points.router)
app.include_router(group_courses.router)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} → {exc.code}: {exc.message}")
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except OperationalError:
        logger.exception("Health check: database unreachable")
        return JSONResponse(status_code=503, content={"database": False})
    return {"database": True}
