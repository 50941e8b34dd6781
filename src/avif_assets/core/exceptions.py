"""项目内使用的自定义异常定义。"""


class AvifAssetsError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(AvifAssetsError):
    """配置不合法时抛出。"""


class CodecFailure(AvifAssetsError):
    """编码器转换单个资源失败。"""


class AssetConversionError(AvifAssetsError):
    """资源未能转换（向宿主报告的诊断信息）。"""


class RenameConflictError(AvifAssetsError):
    """同一原始资源被重复记录到重命名表。"""


class ConfigurationConflictWarning(AvifAssetsError):
    """配置项互相冲突，但不影响构建继续进行。"""


class ReferenceRewriteError(AvifAssetsError):
    """文本资源无法改写引用（例如内容不是合法 UTF-8）。"""
