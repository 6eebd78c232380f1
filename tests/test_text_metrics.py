import pytest

from text_metrics import reading_time, slugify, word_count


def _words(count: int) -> str:
    return " ".join(["word"] * count)


@pytest.mark.parametrize("count, minutes", [(400, 2), (200, 1), (201, 2), (1, 1), (0, 0)])
def test_reading_time_rounds_up(count: int, minutes: int) -> None:
    assert reading_time(_words(count)) == minutes


def test_reading_time_custom_rate() -> None:
    assert reading_time(_words(300), words_per_minute=100) == 3


def test_reading_time_rejects_non_positive_rate() -> None:
    with pytest.raises(ValueError):
        reading_time("a b", words_per_minute=0)


def test_word_count_splits_on_any_whitespace() -> None:
    assert word_count("# Title\n\nOne  two\tthree") == 5


def test_slugify() -> None:
    assert slugify("AI Trends: What's Next in 2024?") == "ai-trends-what-s-next-in-2024"
    assert slugify("!!!") == "untitled"
