"""服装厂生产管理系统（单机版）"""

__version__ = "1.0.0"
