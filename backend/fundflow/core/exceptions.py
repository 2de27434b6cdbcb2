"""
业务异常

服务层抛出的异常都继承自ValueError，路由层按类型映射为HTTP状态码。
"""


class NotFoundError(ValueError):
    """资源不存在 (404)"""


class PermissionDeniedError(ValueError):
    """无权执行该操作 (403)"""


class ConflictError(ValueError):
    """状态冲突，例如并发修改或投票已截止 (409)"""
