from __future__ import annotations

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    PRECHECK_CONFIG_PATH: str = os.getenv("PRECHECK_CONFIG_PATH", "precheck.yml")
    PRECHECK_GLOBAL_TIMEOUT_S: float = float(os.getenv("PRECHECK_GLOBAL_TIMEOUT_S", "120"))
    PRECHECK_MAX_PARALLEL: int = int(os.getenv("PRECHECK_MAX_PARALLEL", 8))
    # unset: checks without their own timeout inherit the global timeout
    PRECHECK_DEFAULT_TIMEOUT_S: float | None = (
        float(os.environ["PRECHECK_DEFAULT_TIMEOUT_S"])
        if os.getenv("PRECHECK_DEFAULT_TIMEOUT_S")
        else None
    )
    PRECHECK_LOG_LEVEL: str = os.getenv("PRECHECK_LOG_LEVEL", "INFO").upper()
    PRECHECK_REPORT_HISTORY: int = int(os.getenv("PRECHECK_REPORT_HISTORY", 20))


settings = Settings()
