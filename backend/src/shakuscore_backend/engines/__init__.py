"""
引擎层：分列布局等纯计算。
"""
