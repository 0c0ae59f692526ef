#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Balance - Models Package
Доменные модели и перечисления движка Balance
"""

from .base import ValidationError, new_id

from .enums import (
    Recurrence,
    TaskStatus,
    Rating,
    RATING_WEIGHTS,
    ChartType,
    TimePeriod,
    Granularity
)

from .templates import (
    Pillar,
    Category,
    Subcategory
)

from .plan import (
    DayItem,
    DayPlan,
    LogEntry
)

from .settings import Settings

from .defaults import default_pillars, default_categories, PILLAR_COLORS

__all__ = [
    'ValidationError',
    'new_id',

    # Enums
    'Recurrence',
    'TaskStatus',
    'Rating',
    'RATING_WEIGHTS',
    'ChartType',
    'TimePeriod',
    'Granularity',

    # Templates
    'Pillar',
    'Category',
    'Subcategory',

    # Plans and history
    'DayItem',
    'DayPlan',
    'LogEntry',

    'Settings',

    'default_pillars',
    'default_categories',
    'PILLAR_COLORS'
]
