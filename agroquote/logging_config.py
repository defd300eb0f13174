"""日志配置：控制台输出，带时间戳。入口脚本启动时调用 setup_logging()。"""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """配置根日志器。重复调用不会重复添加 handler。"""
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level or "INFO").upper(), logging.INFO))

    if not any(getattr(h, "_agroquote", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handler._agroquote = True
        root.addHandler(handler)

    return logging.getLogger("agroquote")
