"""
Configuration for the design-thinking bookshelf service.

Runtime settings come from environment variables (or a ``.env`` file)
through ``pydantic-settings``. The topic tabs and the synonym table are
curation data rather than deployment knobs, so they live here as plain
module constants.
"""

from typing import Dict, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Topic tabs, in display order. The first one shows the whole catalog.
ALL_TAB = "전체"
TOPIC_TABS: List[str] = [
    ALL_TAB,
    "공감",
    "혁신",
    "고객",
    "문제정의",
    "피드백",
    "퍼실리테이션",
    "서비스디자인",
    "프로토타입",
]

# Design-thinking vocabulary used to widen local keyword search.
SYNONYMS: Dict[str, List[str]] = {
    "공감": ["고객", "인터뷰", "관찰", "사용자", "empathy", "마음", "심리"],
    "혁신": ["변화", "창의", "새로운", "innovation", "아이디어"],
    "문제": ["정의", "본질", "분석", "원인", "problem"],
    "실행": ["프로토타입", "테스트", "시제품", "prototype", "구현"],
    "협업": ["팀", "커뮤니케이션", "퍼실리테이션", "워크숍", "회의"],
}

SHEET_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Gemini (remote ranking). No key means local scoring only.
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "api_key"),
    )
    gemini_model: str = "gemini-3-flash-preview"
    gemini_temperature: float = 0.1
    ranker_timeout_seconds: float = 15.0

    # Catalog source
    sheet_id: str = "1CGC3NzrGwXJuKNI_C1tJ7rTM4U7F_CzASYSBe_oDlFU"
    catalog_csv_url: Optional[str] = None
    catalog_csv_path: Optional[str] = None
    http_timeout_seconds: float = 10.0

    # Query pipeline timing
    debounce_seconds: float = 0.3
    min_display_seconds: float = 0.6

    log_level: str = "info"

    @property
    def catalog_url(self) -> str:
        return self.catalog_csv_url or SHEET_EXPORT_URL.format(sheet_id=self.sheet_id)


# Global settings instance
settings = Settings()
