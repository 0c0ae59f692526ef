"""
Balance - движок планировщика жизненного баланса

Шаблоны (столпы, категории, подкатегории) превращаются в план дня,
выполнения пишутся в журнал, напоминания ставятся на начало задач,
аналитика считается по истории.
"""

__version__ = "1.0.0"
