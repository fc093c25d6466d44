from os import getenv

DEFAULT_PERSONA = """You are a friendly productivity assistant living inside a todo-list app.
Keep replies short (1-3 sentences), practical and encouraging.
Help the user plan, prioritise and break down their tasks."""


class Settings:
    DATABASE_URL = getenv("DATABASE_URL", "sqlite:///./todo.db")

    JWT_SECRET = getenv("JWT_SECRET", "dev-secret-change-in-prod")
    JWT_EXPIRE_MIN = int(getenv("JWT_EXPIRE_MIN", "15"))  #expire au bout de 15 minutes
    JWT_REFRESH_EXPIRE_MIN = int(getenv("JWT_REFRESH_EXPIRE_MIN", "43200"))  #expire au bout d'1 mois
    JWT_VERIFY_EXPIRE_MIN = int(getenv("JWT_VERIFY_EXPIRE_MIN", "1440"))  # lien de vérification: 1 jour

    GEMINI_API_KEY = getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL = getenv("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_BASE_URL = getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta")
    GEMINI_MAX_OUTPUT_TOKENS = int(getenv("GEMINI_MAX_OUTPUT_TOKENS", "1000"))
    GEMINI_TIMEOUT = float(getenv("GEMINI_TIMEOUT", "60"))

    CHAT_HEARTBEAT_SECONDS = float(getenv("CHAT_HEARTBEAT_SECONDS", "15"))
    CHAT_PERSONA = getenv("CHAT_PERSONA", DEFAULT_PERSONA)

    CORS_ORIGINS = [o.strip() for o in getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
    LOG_LEVEL = getenv("LOG_LEVEL", "INFO")

settings = Settings()
