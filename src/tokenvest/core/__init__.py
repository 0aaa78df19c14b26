"""
tokenvest Core Module

Core functionality for token vesting:
- Vesters and the claim engine
- In-process ERC20 token used as custodied asset
- Exceptions, constants, logging and metrics
"""

__all__ = []
