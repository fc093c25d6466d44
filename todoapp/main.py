import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from todoapp.core.config import settings
from todoapp.core.database import engine, Base
from todoapp.models import user, todo, ai_chat  # noqa: F401 (tables)
from todoapp.routers import health, users, todos, chat

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Init DB
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Todo Chat API",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router, prefix="/health")
app.include_router(users.router)
app.include_router(todos.router)
app.include_router(chat.router)
