"""日志模块

提供日志配置与敏感数据过滤：
- get_logger / setup_logger / setup_root_logger
- mask_credential: 不透明凭证脱敏
- log_filter_hook_manager: 请求参数敏感字段过滤

使用示例:
    from yoauth.log import get_logger, log_filter_hook_manager

    logger = get_logger()
    logger.debug(f"Token request: {log_filter_hook_manager.apply_filters(form)}")
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    mask_credential,
    logger,
    get_logger,
)

from .filter_hooks import (
    LogFilterHook,
    SensitiveDataFilterHook,
    LogFilterHookManager,
    log_filter_hook_manager,
    DEFAULT_SENSITIVE_PATTERNS,
    FILTERED_PLACEHOLDER,
)

__all__ = [
    # 日志工具
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "mask_credential",
    "logger",
    "get_logger",

    # 日志过滤钩子
    "LogFilterHook",
    "SensitiveDataFilterHook",
    "LogFilterHookManager",
    "log_filter_hook_manager",
    "DEFAULT_SENSITIVE_PATTERNS",
    "FILTERED_PLACEHOLDER",
]
