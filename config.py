import os
from typing import List, Optional

from pydantic import BaseModel


class Settings(BaseModel):
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_timeout: float = 10.0
    # The dynamic path is opt-in; lessons come from the static tables otherwise.
    lesson_generation: bool = False
    demo_user_id: str = "demo-user"
    cors_origins: List[str] = ["*"]
    port: int = 8000
    log_level: str = "INFO"

    @property
    def generation_enabled(self) -> bool:
        return self.lesson_generation and bool(self.gemini_api_key)


def get_settings() -> Settings:
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        gemini_timeout=float(os.getenv("GEMINI_TIMEOUT", "10")),
        lesson_generation=os.getenv("LESSON_GENERATION", "0") == "1",
        demo_user_id=os.getenv("DEMO_USER_ID", "demo-user"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        port=int(os.getenv("PORT", 8000)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
