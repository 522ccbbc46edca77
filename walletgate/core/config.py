from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv(override=True)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Cheshire"
    # Application settings
    PORT: int = 8080
    HOST: str = "127.0.0.1"
    VERSION: str = "0.7.0"
    FRONTEND_URL: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # SQLAlchemy database URL
    DATABASE_URL: str = "sqlite:///./walletgate.db"

    # Login configuration
    ENCODE_KEY: str | None = None
    ENCODE_ALGORITHM: str = "HS256"
    TOKEN_ISSUER: str = "cheshire-auth"
    SESSION_DURATION_SECONDS: int = 129600  # 36 hours
    NONCE_EXPIRY_SECONDS: int = 300  # 5 minutes
    CHAIN_ID: int = 1
    SESSION_CLEANUP_INTERVAL_SECONDS: int = 12 * 60 * 60

    # Client settings
    API_BASE_URL: str = "http://localhost:8080/api"
    CLIENT_CACHE_TTL_SECONDS: int = 6 * 60
    CLIENT_TIMEOUT_SECONDS: float = 5.0

    # Debug settings
    DEBUG: bool = False

    class Config:
        env_file = ".env"

# Instantiate the settings
settings = Settings()
