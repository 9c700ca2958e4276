from decimal import Decimal
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "UTC"

    # "supabase" or "memory"
    ORDER_STORE: str = "supabase"

    TAX_RATE: Decimal = Decimal("0.10")
    ORDER_LIST_LIMIT: int = 500
    ORDER_NUMBER_MAX_RETRIES: int = 3
    ORDER_STRICT_TRANSITIONS: bool = False

    @property
    def uses_memory_store(self) -> bool:
        return self.ORDER_STORE == "memory"

    class Config:
        env_file = ".env"

settings = Settings()
