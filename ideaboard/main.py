import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ideaboard.core import config
from ideaboard.database import ensure_schema
from ideaboard.routes import admin_routes, auth_routes, idea_routes, user_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

logger = logging.getLogger(__name__)

app = FastAPI(title='Ideaboard API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'DELETE'],
    allow_headers=['Content-Type', 'Authorization'],
)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'message': message})


def validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return 'Requête invalide'

    first_error = errors[0]
    original = (first_error.get('ctx') or {}).get('error')
    if isinstance(original, ValueError):
        return str(original)
    if first_error.get('type') == 'missing':
        return 'Tous les champs sont obligatoires'
    return str(first_error.get('msg', 'Requête invalide'))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == 'Not Found':
        message = 'Route not found'
    return error_response(exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, validation_message(exc))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # The request session is closed (and rolled back) by get_db.
    logger.exception('Database error on %s %s', request.method, request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, 'Erreur de base de données')


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, 'Erreur interne du serveur')


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        ensure_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@app.get('/api/health')
def health():
    return {'success': True, 'message': 'Server is running'}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(idea_routes.router, prefix='/api/ideas')
app.include_router(user_routes.router, prefix='/api/users')
app.include_router(admin_routes.router, prefix='/api/admin')
