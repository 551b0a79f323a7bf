import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    """Runtime settings read from the environment (or a .env file)"""

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    database_url: str = "sqlite:///./potluck.db"
    table_name: str = "responses"
    order_by: Optional[str] = "created_at"
    realtime_schema: str = "public"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_key=os.getenv("SUPABASE_ANON_KEY") or None,
            database_url=os.getenv("DATABASE_URL", "sqlite:///./potluck.db"),
            table_name=os.getenv("POTLUCK_TABLE", "responses"),
            order_by=os.getenv("POTLUCK_ORDER_BY", "created_at") or None,
            realtime_schema=os.getenv("POTLUCK_REALTIME_SCHEMA", "public"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
        )

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
