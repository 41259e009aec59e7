import random

import pytest

from memory_challenge.models.game import Color
from memory_challenge.services.pattern_generator import generate_sequence

from conftest import ScriptedRandom, longest_run


@pytest.mark.parametrize("length", [0, 1, 3, 4, 10, 57])
def test_generates_requested_length(length):
    assert len(generate_sequence(length, rng=random.Random(7))) == length


def test_negative_length_is_rejected():
    with pytest.raises(ValueError):
        generate_sequence(-1)


def test_no_color_repeats_more_than_three_times():
    rng = random.Random(1234)
    for _ in range(200):
        sequence = generate_sequence(40, rng=rng)
        assert longest_run(sequence) <= 3


def test_fourth_identical_color_is_forced_to_the_opposite():
    sequence = generate_sequence(6, rng=ScriptedRandom([Color.RED] * 6))
    assert sequence[:4] == [Color.RED, Color.RED, Color.RED, Color.GREEN]
    assert longest_run(sequence) <= 3


def test_run_limit_holds_across_the_append_boundary():
    previous = [Color.RED, Color.GREEN, Color.GREEN, Color.GREEN]
    generated = generate_sequence(2, previous=previous, rng=ScriptedRandom([Color.GREEN] * 2))
    assert generated[0] is Color.RED
    assert longest_run(previous + generated) <= 3


def test_short_previous_does_not_force():
    generated = generate_sequence(1, previous=[Color.RED, Color.RED], rng=ScriptedRandom([Color.RED]))
    assert generated == [Color.RED]


def test_both_colors_are_roughly_equally_likely():
    sequence = generate_sequence(10000, rng=random.Random(42))
    greens = sum(1 for color in sequence if color is Color.GREEN)
    assert 4500 < greens < 5500


def test_module_random_is_used_by_default():
    random.seed(3)
    first = generate_sequence(12)
    random.seed(3)
    assert generate_sequence(12) == first
