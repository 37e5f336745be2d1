"""vaultpkg - 内容包管理核心（标识、依赖、注册表、执行计划）"""

__version__ = "0.3.0"
