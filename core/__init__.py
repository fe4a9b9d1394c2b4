"""
Core Module

Foundational settings shared by the valuation engine.

Components:
- config: Engine constants (base currency, supported currencies, windows)

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['config']
