# models/defaults.py

from typing import List

from balance.models.enums import Recurrence
from balance.models.templates import Category, Pillar

# Цвета столпов по умолчанию
PILLAR_COLORS = {
    'health': '#00bf63',
    'relationships': '#ff66c4',
    'work': '#ffde59',
}


def default_pillars() -> List[Pillar]:
    return [
        Pillar(id='health', name='Health', color=PILLAR_COLORS['health'], order=0),
        Pillar(id='relationships', name='Relationships', color=PILLAR_COLORS['relationships'], order=1),
        Pillar(id='work', name='Work', color=PILLAR_COLORS['work'], order=2),
    ]


def default_categories() -> List[Category]:
    return [
        Category(id='exercise', pillar_id='health', name='Exercise', recurrence=Recurrence.DAILY,
                 default_start='07:00', default_end='08:00'),
        Category(id='meditation', pillar_id='health', name='Meditation', recurrence=Recurrence.DAILY,
                 default_start='06:30', default_end='07:00'),
        Category(id='family-time', pillar_id='relationships', name='Family Time', recurrence=Recurrence.DAILY,
                 default_start='18:00', default_end='19:00'),
        Category(id='deep-work', pillar_id='work', name='Deep Work', recurrence=Recurrence.DAILY,
                 default_start='09:00', default_end='11:00'),
    ]
