"""卫星实时位置跟踪命令行入口"""
