import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from flexify.core import config
from flexify.database import Base, SchemaUpgradeError, engine, ensure_schema
from flexify.errors import register_error_handlers
from flexify.models import attendance, availability, booking, membership_plan, user  # noqa: F401
from flexify.routes import attendance_routes, auth_routes, membership_routes, schedule_routes, user_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_schema()
    except SchemaUpgradeError:
        logger.critical('Refusing to start without the booking integrity indexes.', exc_info=True)
        raise
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@asynccontextmanager
async def lifespan(app: FastAPI):
    config.validate_runtime_config()
    initialize_database()
    logger.info('Flexify API started (env=%s)', config.APP_ENV)
    yield
    logger.info('Flexify API shutting down')


app = FastAPI(title='Flexify API', version='1.0.0', lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

register_error_handlers(app)


@app.middleware('http')
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info('%s %s -> %s', request.method, request.url.path, response.status_code)
    return response


@app.get('/')
def root():
    return {
        'success': True,
        'message': 'Flexify API is running',
        'endpoints': {
            'auth': '/api/auth',
            'users': '/api/users',
            'schedule': '/api/schedule',
            'memberships': '/api/memberships',
            'attendance': '/api/attendance',
        },
    }


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(user_routes.router, prefix='/api/users')
app.include_router(schedule_routes.router, prefix='/api/schedule')
app.include_router(membership_routes.router, prefix='/api/memberships')
app.include_router(attendance_routes.router, prefix='/api/attendance')
