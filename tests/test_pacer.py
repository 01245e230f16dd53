"""Unit tests for the words-per-minute to delay conversion.

WHY: The delay decides how long each unit stays on screen. The reference
figure (200 wpm, 3 words = 900 ms) and the floor-before-multiply rule are
easy to break with an innocent-looking refactor.
"""

import pytest

from wordbyword.core.models import ConfigurationError
from wordbyword.core.pacer import compute_delay_ms, milliseconds_per_word


class TestComputeDelay:
    """compute_delay_ms() floors the per-word figure, then multiplies."""

    def test_reference_scenario(self):
        assert compute_delay_ms(200, 3) == 900

    def test_single_word(self):
        assert compute_delay_ms(300, 1) == 200

    def test_slow_reader(self):
        assert compute_delay_ms(60, 5) == 5000

    def test_floor_applies_before_multiplying(self):
        # 280 wpm is 214.28... ms per word; 214 * 7 = 1498, not round(1500)
        assert compute_delay_ms(280, 7) == 1498

    def test_fractional_wpm(self):
        assert compute_delay_ms(120.0, 2) == 1000

    def test_zero_words(self):
        assert compute_delay_ms(200, 0) == 0

    def test_returns_int(self):
        assert isinstance(compute_delay_ms(333, 2), int)

    @pytest.mark.parametrize("wpm", [0, -1, -250.5, float("nan"), float("inf")])
    def test_non_positive_wpm_is_rejected(self, wpm):
        with pytest.raises(ConfigurationError):
            compute_delay_ms(wpm, 3)

    def test_negative_word_count_is_rejected(self):
        with pytest.raises(ConfigurationError):
            compute_delay_ms(200, -1)


class TestMillisecondsPerWord:

    def test_unfloored_value(self):
        assert milliseconds_per_word(280) == pytest.approx(214.2857, rel=1e-4)

    def test_rejects_zero(self):
        with pytest.raises(ConfigurationError):
            milliseconds_per_word(0)
