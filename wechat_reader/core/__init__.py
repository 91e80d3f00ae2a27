"""数据读取核心模块"""
