"""
理发店预约平台 - 折扣与预约核心
"""

__version__ = "1.0.0"
