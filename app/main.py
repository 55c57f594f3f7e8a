from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import get_settings
from app.core.errors import register_exception_handlers
from app.core.logging import setup_logging
from app.db.init import init_db
from app.api import users, orders
from app.auth.jwt import router as auth_router

# Fails fast when JWT_SECRET_KEY is missing
settings = get_settings()
setup_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="farmdirect",
    description="Identity, authorization and order lifecycle API for the FarmDirect marketplace",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Initialize database
@app.on_event("startup")
async def startup_event():
    init_db()

# Include routers
app.include_router(auth_router, prefix=f"{settings.API_PREFIX}/auth", tags=["auth"])
app.include_router(users.router, prefix=f"{settings.API_PREFIX}/users", tags=["users"])
app.include_router(orders.router, prefix=f"{settings.API_PREFIX}/orders", tags=["orders"])

@app.get("/")
def read_root():
    return {"message": "FarmDirect Backend API is running!"}
