"""
集中配置。
从环境变量 (以及项目根目录的 .env 文件) 读取，缺省值与线上保持一致。
"""
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from agroquote.errors import ConfigurationError

_PROJECT_ROOT = Path(__file__).parent.parent

load_dotenv(_PROJECT_ROOT / ".env")

# 汇率 (USD -> Bs) 缺省值：价格表中既没有显式汇率也推断不出来时使用
DEFAULT_RATE = 6.96

# 价格表缓存有效期 (秒)
DEFAULT_CACHE_TTL = 300

# 最低起订金额 (USD)，只作为报价单元数据，不在组装时强制
MIN_ORDER_USD = 3000

REFERENCE_CURRENCY = "USD"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip().replace(",", "."))
    except ValueError:
        raise ConfigurationError(f"环境变量 {name} 不是有效数值: {raw!r}")


@dataclass
class Settings:
    feed_path: str = ""
    sheet_name: str = "PRECIOS"
    version_cell: str = ""
    rate_cell: str = ""
    reference_path: str = ""
    default_rate: float = DEFAULT_RATE
    cache_ttl: float = DEFAULT_CACHE_TTL
    min_order: float = MIN_ORDER_USD
    currency: str = REFERENCE_CURRENCY
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls(
            feed_path=os.getenv("AGROQUOTE_FEED_PATH", ""),
            sheet_name=os.getenv("AGROQUOTE_SHEET_NAME", "PRECIOS"),
            version_cell=os.getenv("AGROQUOTE_VERSION_CELL", ""),
            rate_cell=os.getenv("AGROQUOTE_RATE_CELL", ""),
            reference_path=os.getenv(
                "AGROQUOTE_REFERENCE_PATH", str(_PROJECT_ROOT / "knowledge" / "catalog.json")
            ),
            default_rate=_env_float("USD_BOB_RATE", DEFAULT_RATE),
            cache_ttl=_env_float("AGROQUOTE_CACHE_TTL", DEFAULT_CACHE_TTL),
            min_order=_env_float("AGROQUOTE_MIN_ORDER_USD", MIN_ORDER_USD),
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=int(_env_float("API_PORT", 8000)),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.default_rate <= 0:
            raise ConfigurationError("默认汇率必须为正数")
        if self.cache_ttl < 0:
            raise ConfigurationError("缓存有效期不能为负数")
