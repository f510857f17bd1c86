"""通用工具：日志、配置加载、JSON读写"""
