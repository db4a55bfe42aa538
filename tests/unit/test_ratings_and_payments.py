"""
Unit tests for review averaging and payment amount conversion
"""
from decimal import Decimal

import pytest

from knowloop.errors import ValidationError
from knowloop.services.payment_ledger import parse_amount, to_minor_units
from knowloop.services.review_aggregator import average_rating, validate_rating


class TestAverageRating:
    def test_empty_is_zero(self):
        assert average_rating([]) == 0

    def test_two_reviews(self):
        assert average_rating([4, 5]) == 4.5

    def test_rounds_to_one_decimal(self):
        assert average_rating([4, 4, 5]) == 4.3
        assert average_rating([5, 4, 4, 4]) == 4.3
        assert average_rating([1, 2]) == 1.5

    def test_half_rounds_up(self):
        # mean 4.25
        assert average_rating([4, 4.5]) == 4.3


class TestValidateRating:
    @pytest.mark.parametrize("rating,expected", [(1, 1.0), (5, 5.0), ("4", 4.0), (3.5, 3.5)])
    def test_valid(self, rating, expected):
        assert validate_rating(rating) == expected

    @pytest.mark.parametrize("rating", [0, 5.1, -3, "great", None, True])
    def test_invalid(self, rating):
        with pytest.raises(ValidationError):
            validate_rating(rating)


class TestMinorUnits:
    def test_whole_amount(self):
        assert to_minor_units(25) == 2500

    def test_fractional_amount(self):
        assert to_minor_units("19.99") == 1999
        assert to_minor_units(0.1) == 10

    def test_rounds_half_up(self):
        assert to_minor_units("10.005") == 1001

    def test_amount_kept_to_cents(self):
        assert parse_amount("25.5") == Decimal("25.50")
        assert parse_amount(99999999.99) == Decimal("99999999.99")

    @pytest.mark.parametrize("amount", [0, -5, "abc", True, "0.001", "1e40", 100000000, "NaN"])
    def test_invalid(self, amount):
        with pytest.raises(ValidationError):
            to_minor_units(amount)
