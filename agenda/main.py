import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from agenda.core import config
from agenda.core.errors import VALIDATION_ERROR
from agenda.database import Base, engine, ensure_booking_schema
from agenda.models import (  # noqa: F401
    appointment,
    branch,
    client,
    employee,
    exception,
    reminder,
    schedule,
    service,
    settings,
    tenant,
)
from agenda.reminders.dispatcher import dispatcher
from agenda.routes import (
    appointment_routes,
    availability_routes,
    exception_routes,
    reminder_routes,
    schedule_routes,
    settings_routes,
)

app = FastAPI(title='Agenda Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Keep FastAPI's 422 but tag it with the same error code the domain checks use."""
    logger.warning('Validation error for %s: %s', request.url.path, exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            'detail': {
                'code': VALIDATION_ERROR,
                'message': 'Request is invalid.',
                'errors': jsonable_encoder(exc.errors()),
            }
        },
    )


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('startup')
def start_reminder_dispatcher() -> None:
    if config.REMINDERS_ENABLED:
        dispatcher.start()


@app.on_event('shutdown')
def stop_reminder_dispatcher() -> None:
    dispatcher.stop()


@app.get('/')
def root():
    return {'status': 'Agenda Booking API Running'}


app.include_router(availability_routes.router)
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(schedule_routes.router, prefix='/employees')
app.include_router(exception_routes.router, prefix='/exceptions')
app.include_router(settings_routes.router, prefix='/settings')
app.include_router(reminder_routes.router, prefix='/reminders')
