"""
错误分类。

- ConfigurationError: 配置缺失或无效，直接中止调用，不重试
- FeedUnavailableError: 价格表读取失败 (不可达/格式错误)，不自动重试，也不自动回退到旧缓存
- QuoteAssemblyError: 报价单组装失败

找不到价格不是错误：单价按 0 处理，由调用方决定是否拦截。
"""


class AgroquoteError(Exception):
    """所有业务错误的基类。"""


class ConfigurationError(AgroquoteError):
    pass


class FeedUnavailableError(AgroquoteError):
    """价格数据不可用。对外只暴露通用提示，细节写入日志。"""

    public_message = "price_data_unavailable"


class QuoteAssemblyError(AgroquoteError):
    public_message = "quote_failed"
