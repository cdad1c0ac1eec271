from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Per-page render bound.
MIN_RENDER_TIMEOUT_MS = 1000
MAX_RENDER_TIMEOUT_MS = 10000


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
        populate_by_name=True,
    )

    app_name: str = 'Property Application Intake'

    data_dir: Path = Field(
        default=Path('./data'),
        validation_alias=AliasChoices('INTAKE_DATA_DIR', 'DATA_DIR'),
    )

    # Static assets
    source_pdf_path: Path = Field(
        default=Path('./public/form.pdf'),
        validation_alias=AliasChoices('SOURCE_PDF_PATH', 'FORM_PDF_PATH'),
    )
    assets_dir: Path = Field(
        default=Path('./public'),
        validation_alias=AliasChoices('ASSETS_DIR', 'PUBLIC_DIR'),
    )
    primary_logo: str = 'images/logo-suncity-color.svg'
    secondary_logo: str = 'images/logo-monarch-color.svg'
    # Missing logos degrade to an omitted image unless this is set.
    require_logos: bool = Field(
        default=False,
        validation_alias=AliasChoices('REQUIRE_LOGOS', 'INTAKE_REQUIRE_LOGOS'),
    )

    # Headless browser
    render_timeout_ms: int = Field(
        default=10000,
        validation_alias=AliasChoices('RENDER_TIMEOUT_MS', 'INTAKE_RENDER_TIMEOUT_MS'),
    )
    browser_executable_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices('BROWSER_EXECUTABLE_PATH', 'CHROMIUM_EXECUTABLE_PATH'),
    )
    # Comma-separated launch arguments.
    browser_args: str = Field(
        default='--no-sandbox,--disable-setuid-sandbox,--disable-dev-shm-usage,--disable-gpu',
        validation_alias=AliasChoices('BROWSER_ARGS', 'CHROMIUM_ARGS'),
    )
    browser_viewport_width: int = 612
    browser_viewport_height: int = 792

    # Comma-separated 1-indexed source pages that never receive the signature overlay.
    # Tied to one revision of the source document.
    overlay_skip_pages: str = Field(
        default='1,2,18,19,20,26',
        validation_alias=AliasChoices('OVERLAY_SKIP_PAGES', 'INTAKE_OVERLAY_SKIP_PAGES'),
    )
    stamp_floor_plan: bool = True

    # Persistence
    display_id_prefix: str = 'SUNMON'
    max_pdf_bytes: int = 14 * 1024 * 1024

    # Admin gate
    admin_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices('ADMIN_TOKEN', 'INTAKE_ADMIN_TOKEN'),
    )

    # HTTP server
    server_host: str = Field(default='0.0.0.0', validation_alias=AliasChoices('INTAKE_HOST', 'SERVER_HOST'))
    server_port: int = Field(default=8010, validation_alias=AliasChoices('INTAKE_PORT', 'SERVER_PORT'))

    @field_validator('render_timeout_ms', mode='after')
    @classmethod
    def _bound_render_timeout(cls, value: int) -> int:
        return max(MIN_RENDER_TIMEOUT_MS, min(int(value), MAX_RENDER_TIMEOUT_MS))

    def browser_launch_args(self) -> list[str]:
        args: list[str] = []
        for item in self.browser_args.split(','):
            normalized = item.strip()
            if not normalized:
                continue
            args.append(normalized)
        return args

    def skip_pages(self) -> frozenset[int]:
        pages: set[int] = set()
        for item in self.overlay_skip_pages.split(','):
            normalized = item.strip()
            if not normalized:
                continue
            pages.add(int(normalized))
        return frozenset(pages)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    (settings.data_dir / 'applications').mkdir(parents=True, exist_ok=True)
    return settings
