"""项目内使用的自定义异常定义。"""


class ImageRegenError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(ImageRegenError):
    """配置不合法时抛出。"""


class SourceRootMissingError(ImageRegenError):
    """源目录不存在或不可读，构建无法继续。"""


class VcsQueryError(ImageRegenError):
    """版本控制查询失败。"""


class FeaturedConfigError(ImageRegenError):
    """featured 配置文件缺失或格式错误。"""
