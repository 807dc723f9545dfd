# ============================================================================
#  config.py — Environment Configuration
#  Version: 2.0.0
#  CHANGES: Settings model loaded from .env / process environment
# ============================================================================
import os
import logging
from typing import Literal, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

REQUIRED_VARS = ("SHOPIFY_SHOP_NAME", "SHOPIFY_ACCESS_TOKEN")
TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    shop_name: str
    access_token: str
    api_version: str = "2024-04"
    vendor_store_path: str = "data/vendors.json"
    analytics_store_path: str = "data/analytics.json"
    match_key: Literal["handle", "title"] = "handle"
    delay_between_products: float = Field(0.0, ge=0)
    dry_run: bool = False
    max_retries: int = Field(3, ge=1)

    def engine_config(self) -> dict:
        return {
            "MATCH_KEY": self.match_key,
            "DRY_RUN": self.dry_run,
            "DELAY_BETWEEN_PRODUCTS": self.delay_between_products,
        }


def _clean(value: Optional[str]) -> str:
    # Remove whitespace and quotes (common .env file issue)
    return (value or "").strip().strip('"\'').strip()


def load_settings(env_file: Optional[str] = ".env") -> Settings:
    """Reads settings from the environment after loading the optional .env file."""
    if env_file and os.path.exists(env_file):
        load_dotenv(env_file, override=True)

    required_vars = {var: _clean(os.getenv(var)) for var in REQUIRED_VARS}
    missing = [var for var, value in required_vars.items() if not value]
    if missing:
        logger.error(f"Missing required environment variables: {', '.join(missing)}")
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

    settings = Settings(
        shop_name=required_vars["SHOPIFY_SHOP_NAME"],
        access_token=required_vars["SHOPIFY_ACCESS_TOKEN"],
        api_version=_clean(os.getenv("SHOPIFY_API_VERSION")) or "2024-04",
        vendor_store_path=_clean(os.getenv("VENDOR_STORE_PATH")) or "data/vendors.json",
        analytics_store_path=_clean(os.getenv("ANALYTICS_STORE_PATH")) or "data/analytics.json",
        match_key=(_clean(os.getenv("SYNC_MATCH_KEY")) or "handle").lower(),
        delay_between_products=float(_clean(os.getenv("DELAY_BETWEEN_PRODUCTS")) or 0),
        dry_run=_clean(os.getenv("SYNC_DRY_RUN")).lower() in TRUTHY,
        max_retries=int(_clean(os.getenv("SHOPIFY_MAX_RETRIES")) or 3),
    )

    logger.info("=" * 80)
    logger.info("Configuration Summary:")
    logger.info(f"  SHOPIFY_SHOP_NAME: {settings.shop_name}")
    logger.info(f"  SHOPIFY_API_VERSION: {settings.api_version}")
    logger.info(f"  SHOPIFY_ACCESS_TOKEN: {'*' * min(len(settings.access_token), 20)}... (hidden)")
    logger.info(f"  VENDOR_STORE_PATH: {settings.vendor_store_path}")
    logger.info(f"  ANALYTICS_STORE_PATH: {settings.analytics_store_path}")
    logger.info(f"  SYNC_MATCH_KEY: {settings.match_key}")
    logger.info("=" * 80)
    return settings
# ============================================================================
# End of config.py — Version: 2.0.0
# ============================================================================
