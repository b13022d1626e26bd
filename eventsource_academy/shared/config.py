"""
MODULE OVERVIEW:
Application-wide configuration using Pydantic Settings.
Where it fits: every EventSource, the demo server and the CLI read their defaults from here.

WHAT IS HAPPENING HERE:
All protocol timings live in one place. The reconnect base interval, the backoff ceiling
and the thread names are declared once and can be overridden with EVENTSOURCE_* env vars
(or a .env file) without touching the client code.
"""
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    LOG_LEVEL: str = "INFO"

    # Reconnect / backoff
    RECONNECT_TIME_MS: int = 1000
    MAX_RECONNECT_TIME_MS: int = 30000

    # Transport
    POOL_KEEPALIVE_EXPIRY_S: float = 1.0
    CLOSE_TIMEOUT_S: float = 5.0

    # Threads
    WORKER_THREAD_NAME: str = "eventsource-worker"
    DISPATCH_THREAD_NAME: str = "eventsource-dispatch"

    # Demo server
    PORT: int = 8000
    DEMO_EVENT_INTERVAL_S: float = 1.0
    DEMO_RETRY_MS: int = 2000

    class Config:
        env_prefix = "EVENTSOURCE_"
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'

settings = Settings()
