import pytest
from decimal import Decimal

from financeflow.domain.enums import EntryDirection
from financeflow.domain.models import ParsedTransaction
from financeflow.normalization import deduplicate, is_duplicate


def parsed(description="UPI-ZOMATO ORDER", amount="450.00", txn_date="2024-03-15"):
    return ParsedTransaction(
        date=txn_date,
        description=description,
        amount=Decimal(amount),
        type=EntryDirection.DEBIT,
        confidence=0.9,
    )


@pytest.mark.unit
class TestIsDuplicate:

    def test_amounts_within_a_paisa_are_equal(self):
        assert is_duplicate(parsed(amount="450.00"), parsed(amount="450.004"))

    def test_amounts_a_paisa_apart_are_different(self):
        assert not is_duplicate(parsed(amount="450.00"), parsed(amount="450.01"))

    def test_description_must_match_exactly(self):
        assert not is_duplicate(parsed(description="ZOMATO"), parsed(description="zomato"))

    def test_date_must_match(self):
        assert not is_duplicate(parsed(txn_date="2024-03-15"), parsed(txn_date="2024-03-16"))

    def test_absurd_amounts_compare_as_zero(self):
        assert is_duplicate(parsed(amount="1E+999999999"), parsed(amount="-9E+999999999"))
        assert not is_duplicate(parsed(amount="1E+999999999"), parsed(amount="450.00"))


@pytest.mark.unit
class TestDeduplicate:

    def test_keeps_first_occurrence(self):
        # Arrange
        first = parsed(amount="450.00")
        second = parsed(amount="450.004")

        # Act
        result = deduplicate([first, second])

        # Assert
        assert result == [first]
        assert result[0] is first

    def test_preserves_input_order(self):
        # Arrange
        a = parsed(description="A")
        b = parsed(description="B")
        c = parsed(description="C")

        # Act
        result = deduplicate([c, a, parsed(description="C"), b, parsed(description="A")])

        # Assert
        assert [t.description for t in result] == ["C", "A", "B"]

    def test_same_day_different_amounts_are_kept(self):
        batch = [parsed(amount="120.00"), parsed(amount="80.00")]

        assert len(deduplicate(batch)) == 2

    def test_compares_against_kept_records_only(self):
        """450.000 and 450.016 are 0.016 apart, so both survive even with 450.008 in between"""
        batch = [parsed(amount="450.000"), parsed(amount="450.008"), parsed(amount="450.016")]

        result = deduplicate(batch)

        assert [t.amount for t in result] == [Decimal("450.000"), Decimal("450.016")]

    def test_no_two_survivors_are_duplicates(self):
        batch = [parsed(amount=a) for a in ("10.00", "10.005", "10.02", "10.021", "10.00")]

        result = deduplicate(batch)

        for i, left in enumerate(result):
            for right in result[i + 1:]:
                assert not is_duplicate(left, right)

    def test_empty_batch(self):
        assert deduplicate([]) == []
