"""Tests for balance/models

Domain models validate on construction and serialize to the camelCase
snapshot format.
"""

import pytest

from balance.models import (
    Category,
    DayItem,
    LogEntry,
    Pillar,
    Rating,
    Settings,
    TaskStatus,
    ValidationError,
)


class TestRating:
    """Rating taxonomy and legacy parsing."""

    @pytest.mark.parametrize("rating, weight", [
        (Rating.WIN, 1.0), (Rating.GOOD, 0.7), (Rating.BAD, 0.3), (Rating.SKIP, 0.0),
    ])
    def test_weights(self, rating, weight):
        assert rating.weight == weight

    @pytest.mark.parametrize("value, expected", [
        ("win", Rating.WIN), ("GOOD", Rating.GOOD), (5, Rating.WIN), (2, Rating.BAD),
        (0, Rating.SKIP), (3, None), (True, None), ("meh", None), (None, None),
    ])
    def test_parse(self, value, expected):
        assert Rating.parse(value) is expected

    def test_skip_results_in_skipped(self):
        assert Rating.SKIP.resulting_status is TaskStatus.SKIPPED
        assert Rating.BAD.resulting_status is TaskStatus.DONE


class TestValidation:
    """Invalid fields raise ValidationError."""

    def test_item_rejects_bad_time(self):
        with pytest.raises(ValidationError):
            DayItem(date="2024-01-10", pillar_id="p", category_id="c", title="T", start="24:00")

    def test_item_rejects_bad_date(self):
        with pytest.raises(ValidationError):
            DayItem(date="2024-02-30", pillar_id="p", category_id="c", title="T")

    def test_item_rejects_negative_minutes(self):
        with pytest.raises(ValidationError):
            DayItem(date="2024-01-10", pillar_id="p", category_id="c", title="T", minutes=-5)

    def test_blank_title_is_rejected(self):
        with pytest.raises(ValidationError):
            DayItem(date="2024-01-10", pillar_id="p", category_id="c", title="   ")

    def test_empty_time_means_untimed(self):
        item = DayItem(date="2024-01-10", pillar_id="p", category_id="c", title="T", start="")

        assert item.start is None
        assert not item.is_timed

    def test_log_entry_is_immutable(self):
        entry = LogEntry(date="2024-01-10", pillar_id="p", category_id="c", rating="win", minutes=5, timestamp=1)

        with pytest.raises(AttributeError):
            entry.minutes = 10

    def test_pillar_color(self):
        with pytest.raises(ValidationError):
            Pillar(name="Health", color="green")


class TestSerialization:
    """camelCase snapshot format."""

    def test_category_round_trip(self):
        category = Category(pillar_id="work", name="Review", recurrence="weekly", weekly_day=5,
                            default_start="16:00", is_special=True)

        data = category.to_dict()

        assert data["pillarId"] == "work"
        assert data["weeklyDay"] == 5
        assert data["isSpecial"] is True
        assert Category.from_dict(data) == category

    def test_item_omits_empty_fields(self):
        item = DayItem(date="2024-01-10", pillar_id="p", category_id="c", title="T")

        assert set(item.to_dict()) == {"id", "date", "pillarId", "categoryId", "title", "status"}

    def test_settings_defaults(self):
        data = Settings().to_dict()

        assert data == {
            "userName": "User",
            "notificationsEnabled": False,
            "specialRollOver": True,
            "chartType": "donut",
            "hapticFeedback": True,
            "isFirstTime": True,
            "hasSeenNotificationPrompt": False,
        }

    def test_settings_updated_returns_copy(self):
        settings = Settings()

        changed = settings.updated(userName="Ada", haptic_feedback=False)

        assert changed.user_name == "Ada"
        assert changed.haptic_feedback is False
        assert settings.user_name == "User"
