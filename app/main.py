import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.logging import configure_logging
from app.core.settings import settings
from app.routers.admin import router as admin_router
from app.routers.admin_ads import router as admin_ads_router
from app.routers.announcements import router as announcements_router
from app.routers.app_reviews import router as app_reviews_router
from app.routers.auth import router as auth_router
from app.routers.boosts import router as boosts_router
from app.routers.cars import router as cars_router
from app.routers.complaints import router as complaints_router
from app.routers.discounts import router as discounts_router
from app.routers.favorites import router as favorites_router
from app.routers.payment import router as payment_router
from app.routers.pricing import router as pricing_router
from app.routers.reports import router as reports_router
from app.routers.reviews import router as reviews_router
from app.routers.users import router as users_router
from app.routers.vehicle_config import router as vehicle_config_router
from app.startup import register_startup

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_startup(app)


@app.exception_handler(RequestValidationError)
async def _validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal server error"})


app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(users_router, prefix="/api/users", tags=["users"])
app.include_router(admin_router, prefix="/api/admin", tags=["admin"])
app.include_router(admin_ads_router, prefix="/api/admin/ads", tags=["admin"])
app.include_router(vehicle_config_router, prefix="/api/vehicle-config", tags=["vehicle-config"])
app.include_router(cars_router, prefix="/api/cars", tags=["cars"])
app.include_router(pricing_router, prefix="/api/pricing", tags=["pricing"])
app.include_router(payment_router, prefix="/api/payment", tags=["payment"])
app.include_router(discounts_router, prefix="/api/discounts", tags=["discounts"])
app.include_router(boosts_router, prefix="/api/boosts", tags=["boosts"])
app.include_router(reviews_router, prefix="/api/reviews", tags=["reviews"])
app.include_router(reports_router, prefix="/api/reports", tags=["reports"])
app.include_router(complaints_router, prefix="/api/complaints", tags=["complaints"])
app.include_router(favorites_router, prefix="/api/favorites", tags=["favorites"])
app.include_router(announcements_router, prefix="/api/announcements", tags=["announcements"])
app.include_router(app_reviews_router, prefix="/api/app-reviews", tags=["app-reviews"])


@app.get("/health")
def health_check():
    return {"status": "ok"}
