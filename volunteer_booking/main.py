import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from volunteer_booking.core import config
from volunteer_booking.database import Base, engine, ensure_availability_schema, ensure_booking_schema
from volunteer_booking.models import availability, booking, volunteer  # noqa: F401
from volunteer_booking.routes import admin_routes, booking_routes, volunteer_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='Volunteer Support Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_availability_schema()
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Volunteer Booking API Running'}


app.include_router(booking_routes.router, prefix='/booking')
app.include_router(volunteer_routes.router, prefix='/volunteer')
app.include_router(admin_routes.router, prefix='/admin')
