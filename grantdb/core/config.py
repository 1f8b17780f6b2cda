"""
Runtime configuration.

Values come from the environment (optionally a local .env file) with
defaults suitable for a local batch run.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


PACKAGE_DIR = Path(__file__).resolve().parent.parent
REFERENCE_DIR = PACKAGE_DIR / "data"

DATA_DIR = Path(os.getenv("GRANTDB_DATA_DIR", "data"))
RAW_DIR = Path(os.getenv("GRANTDB_RAW_DIR", str(DATA_DIR / "raw")))
OUTPUT_DIR = Path(os.getenv("GRANTDB_OUTPUT_DIR", str(DATA_DIR / "output")))
LOG_DIR = Path(os.getenv("GRANTDB_LOG_DIR", "logs"))

# HTTP behaviour for source adapters
HTTP_TIMEOUT = float(os.getenv("GRANTDB_HTTP_TIMEOUT", "30"))
HTTP_MAX_RETRIES = int(os.getenv("GRANTDB_HTTP_MAX_RETRIES", "3"))
HTTP_BACKOFF = float(os.getenv("GRANTDB_HTTP_BACKOFF", "2.0"))

# 0 disables the fetch cache
FETCH_CACHE_TTL_HOURS = float(os.getenv("GRANTDB_FETCH_CACHE_TTL_HOURS", "0"))
FETCH_CACHE_PATH = Path(os.getenv("GRANTDB_FETCH_CACHE_PATH", str(DATA_DIR / "fetch_cache.db")))

MAX_WORKERS = int(os.getenv("GRANTDB_MAX_WORKERS", "4"))

# GiveWell only publishes an Airtable view; the CSV is exported by hand
GIVEWELL_CSV = Path(os.getenv("GRANTDB_GIVEWELL_CSV", str(RAW_DIR / "givewell-grants.csv")))

# Reference tables
ANNUAL_TOTALS_PATH = Path(os.getenv("GRANTDB_ANNUAL_TOTALS", str(REFERENCE_DIR / "annual_totals.json")))
RESIDUAL_CATEGORIES_PATH = Path(
    os.getenv("GRANTDB_RESIDUAL_CATEGORIES", str(REFERENCE_DIR / "residual_categories.json"))
)
EAF_FUNDS_PATH = REFERENCE_DIR / "eaf_funds.json"
CG_FOCUS_AREAS_PATH = REFERENCE_DIR / "cg_focus_areas.json"

# Years shown in the validation report
REPORT_YEARS = [
    y.strip() for y in os.getenv("GRANTDB_REPORT_YEARS", "2019,2020,2021,2022,2023,2024").split(",")
    if y.strip()
]
