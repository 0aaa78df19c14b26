"""
tokenvest token contracts.

- ERC20: fungible token used as the custodied asset of vesters
"""

from .erc20 import ERC20Token, TokenEvent

__all__ = [
    "ERC20Token",
    "TokenEvent",
]
