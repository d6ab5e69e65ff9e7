"""日志过滤钩子模块

提供日志数据的过滤功能，用于：
- 过滤 OAuth2 请求中的敏感数据（client_secret、code、token 等）
- 自定义日志过滤规则

使用示例:
    from yoauth.log import log_filter_hook_manager

    # 默认已注册敏感数据过滤器
    safe_payload = log_filter_hook_manager.apply_filters(token_request)
    logger.debug(f"Token request: {safe_payload}")
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List
import re

# 默认敏感字段名模式
DEFAULT_SENSITIVE_PATTERNS = [
    r'.*(password|pwd|passwd).*',
    r'.*(token|access_token|refresh_token).*',
    r'.*(secret|apikey|api_key).*',
    r'.*(credential|credentials).*',
    r'^code$',
    r'.*(code_verifier|verifier).*',
]

FILTERED_PLACEHOLDER = "*SENSITIVE DATA FILTERED*"


class LogFilterHook(ABC):
    """日志过滤钩子抽象基类

    继承此类可以自定义日志过滤逻辑。
    """

    @abstractmethod
    def should_apply(self, log_data: Dict[str, Any]) -> bool:
        """判断是否应该应用此过滤器"""
        pass

    @abstractmethod
    def filter(self, log_data: Dict[str, Any]) -> Dict[str, Any]:
        """过滤日志数据

        Args:
            log_data: 日志数据

        Returns:
            Dict[str, Any]: 过滤后的日志数据
        """
        pass


class SensitiveDataFilterHook(LogFilterHook):
    """敏感数据过滤器

    根据字段名模式将敏感字段的值替换为占位符，支持嵌套字典和列表。
    `grant_type`、`client_id`、`redirect_uri` 等非敏感字段原样保留。

    Args:
        sensitive_patterns: 敏感字段名模式列表（正则表达式）
    """

    def __init__(self, sensitive_patterns: List[str] = None):
        self.sensitive_patterns = (
            sensitive_patterns if sensitive_patterns is not None else DEFAULT_SENSITIVE_PATTERNS
        )

        # 编译正则表达式以提高性能
        self.compiled_patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in self.sensitive_patterns
        ]

    def should_apply(self, log_data: Dict[str, Any]) -> bool:
        return True

    def filter(self, log_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._filter_dict(log_data)

    def _is_sensitive(self, key: str) -> bool:
        if key == "token_type":
            return False
        return any(pattern.search(key) for pattern in self.compiled_patterns)

    def _filter_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        filtered_data = {}
        for key, value in data.items():
            if self._is_sensitive(str(key)) and value is not None:
                filtered_data[key] = FILTERED_PLACEHOLDER
            elif isinstance(value, dict):
                filtered_data[key] = self._filter_dict(value)
            elif isinstance(value, list):
                filtered_data[key] = self._filter_list(value)
            else:
                filtered_data[key] = value
        return filtered_data

    def _filter_list(self, data: List[Any]) -> List[Any]:
        filtered_data = []
        for item in data:
            if isinstance(item, dict):
                filtered_data.append(self._filter_dict(item))
            elif isinstance(item, list):
                filtered_data.append(self._filter_list(item))
            else:
                filtered_data.append(item)
        return filtered_data


class LogFilterHookManager:
    """日志过滤钩子管理器

    单例模式，管理所有已注册的日志过滤钩子。
    """

    _instance = None
    _hooks: List[LogFilterHook] = []

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(LogFilterHookManager, cls).__new__(cls)
            cls._hooks = []
        return cls._instance

    @classmethod
    def register_hook(cls, hook: LogFilterHook):
        """注册日志过滤钩子"""
        cls._hooks.append(hook)

    @classmethod
    def unregister_hook(cls, hook: LogFilterHook):
        """注销日志过滤钩子"""
        if hook in cls._hooks:
            cls._hooks.remove(hook)

    @classmethod
    def clear_hooks(cls):
        """清除所有已注册的钩子"""
        cls._hooks.clear()

    @classmethod
    def get_hooks(cls) -> List[LogFilterHook]:
        """获取所有已注册的钩子"""
        return cls._hooks.copy()

    @classmethod
    def apply_filters(cls, log_data: Dict[str, Any]) -> Dict[str, Any]:
        """应用所有已注册的过滤器

        Args:
            log_data: 原始日志数据

        Returns:
            Dict[str, Any]: 过滤后的日志数据
        """
        filtered_data = dict(log_data)
        for hook in cls._hooks:
            if hook.should_apply(filtered_data):
                filtered_data = hook.filter(filtered_data)
        return filtered_data


# 创建全局实例
log_filter_hook_manager = LogFilterHookManager()

# 注册默认的敏感数据过滤器
log_filter_hook_manager.register_hook(SensitiveDataFilterHook())
