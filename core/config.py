"""
Valuation Engine Configuration

Static settings for currency normalization, dividend schedules, trend
windows and reminders. Adding a currency means extending
SUPPORTED_CURRENCIES here and in every storage schema in lockstep.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

# Currency all aggregate totals are reported in
BASE_CURRENCY = "USD"

# Base currency first, then the 10 foreign currencies a customer may hold
SUPPORTED_CURRENCIES = (
    "USD",
    "TWD",
    "EUR",
    "JPY",
    "GBP",
    "CNY",
    "AUD",
    "CAD",
    "CHF",
    "HKD",
    "SGD",
)

# Payments per year assumed when the month text is empty or unparseable
DEFAULT_PAYMENT_COUNT = 2

# Trend windows: label -> number of trailing snapshots (None = all)
TREND_WINDOW_SIZES = {
    "ALL": None,
    "7D": 7,
    "1M": 1,
    "3M": 3,
    "1Y": 12,
}

# Chart placement for an all-equal (or empty) value range
FLAT_CHART_POSITION = 0.5

# Vertical margin kept free above and below chart points (0.1 -> 0.9 band)
CHART_MARGIN = 0.1

# Current month plus the following months shown as dividend reminders
REMINDER_HORIZON_MONTHS = 3

# Accepted free-text date formats, tried in order
DATE_FORMATS = (
    "%b %d %Y",    # Sep 8 2023 / Sep 08 2023
    "%Y-%m-%d",    # 2023-09-08
    "%Y/%m/%d",    # 2023/09/08
    "%d/%m/%Y",    # 08/09/2023
    "%m/%d/%Y",    # 09/08/2023
)

# Suffix users type after month numbers ("1月、7月")
MONTH_MARKER = "月"

# Separators accepted between months, checked before "/"
MONTH_LIST_SEPARATORS = (",", "，", "、")
