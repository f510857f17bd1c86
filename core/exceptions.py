"""
轨迹计算异常定义

错误分类：
- InvalidVector: 传播结果不是有限三维向量，跳过该采样点
- PropagationError: 传播器对某一时刻计算失败，跳过该采样点
- EmptyTrajectory: 单个目标所有采样点均失败，从轨迹集合中剔除
- EmptyRefresh: 整轮刷新所有目标均失败，保留上次发布的轨迹集合
- UpstreamUnavailable: 根数数据源不可用，处理方式同EmptyRefresh
- RefreshTimeout: 构建超时，处理方式同EmptyRefresh
"""


class TrackingError(Exception):
    """轨迹计算错误基类"""
    pass


class InvalidVector(TrackingError):
    """无效位置向量"""

    def __init__(self, vector, message: str = ""):
        self.vector = vector
        super().__init__(message or f"无效位置向量: {vector!r}")


class PropagationError(TrackingError):
    """轨道传播失败"""

    def __init__(self, name: str, time: float, code: int = -1, message: str = ""):
        self.name = name
        self.time = time
        self.code = code
        super().__init__(message or f"{name} 在 t={time} 传播失败 (code={code})")


class EmptyTrajectory(TrackingError):
    """轨迹没有任何有效采样点"""

    def __init__(self, name: str, attempted: int = 0):
        self.name = name
        self.attempted = attempted
        super().__init__(f"{name} 的 {attempted} 个采样点全部失败")


class RefreshError(TrackingError):
    """刷新周期失败基类，调用方应继续使用上次发布的轨迹集合"""
    pass


class EmptyRefresh(RefreshError):
    """整轮刷新未产生任何轨迹"""
    pass


class UpstreamUnavailable(RefreshError):
    """根数数据源不可用或返回空集合"""
    pass


class RefreshTimeout(RefreshError):
    """轨迹集合构建超时"""
    pass
