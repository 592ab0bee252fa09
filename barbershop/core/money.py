"""
金额与百分比计算工具 - 全部使用Decimal精确计算
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from barbershop.core.config import settings

Number = Union[Decimal, int, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    """转换为Decimal，float先转字符串避免二进制误差"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_money(value: Number, places: int = None) -> Decimal:
    """按货币最小单位四舍五入（ROUND_HALF_UP）"""
    if places is None:
        places = settings.currency_decimal_places
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def percent_of(amount: Number, rate: Number) -> Decimal:
    """计算 amount 的 rate%（不取整）"""
    return to_decimal(amount) * to_decimal(rate) / HUNDRED


def is_valid_percentage(rate: Number) -> bool:
    """百分比必须在 (0, 100] 区间"""
    value = to_decimal(rate)
    return ZERO < value <= HUNDRED
