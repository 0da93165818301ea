from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):

    # Database
    database_url: str

    # Auth/JWT
    access_token_expire_minutes: int = 30
    jwt_algorithm: str = 'HS256'
    secret_key: str

    # App
    app_name: str = 'Tischbuchung'
    debug: bool = False
    log_dir: str = "logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Lokale Zeitzone des Lokals (Tagesansicht / Gantt)
    venue_timezone: str = "Europe/Berlin"

    # Scheduler: Tische vor anstehenden Reservierungen auf RESERVED setzen
    scheduler_enabled: bool = True
    scheduler_interval_seconds: int = 60
    # Abgelaufene PENDING-Reservierungen als NO_SHOW markieren
    expiry_interval_seconds: int = 3600


settings = Settings()
