from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Loan Origination Gate API"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./loan_gate.db"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Eligibility policy
    salaried_max_age: int = 45
    student_min_age: int = 19
    min_age_years: int = 21
    max_age_years: int = 55
    hold_period_days: int = 90
    loan_limit_ceiling: Decimal = Decimal("45600")
    student_limit_not_graduated: Decimal = Decimal("10000")
    student_limit_graduated: Decimal = Decimal("25000")

    # Financial terms
    gst_rate: Decimal = Decimal("0.18")
    extension_fee_rate: Decimal = Decimal("0.21")
    extension_period_days: int = 30
    max_extensions: int = 4
    extension_window_before_days: int = 5
    extension_window_after_days: int = 15
    base_tenure_days: int = 165
    installment_gap_days: int = 30

    # Caches
    dashboard_cache_ttl_seconds: int = 300
    gate_tracker_ttl_seconds: int = 30
    cache_max_entries: int = 10000

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
