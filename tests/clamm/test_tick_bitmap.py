import pytest

from nethermind.clamm.exceptions import InvalidTickError
from nethermind.clamm.pool.tick_bitmap import TickBitmap

INITIALIZED_TICKS = [-200, -55, -4, 70, 78, 84, 139, 240, 535]


@pytest.fixture(name="bitmap")
def fixture_bitmap():
    tick_bitmap = TickBitmap()
    for tick in INITIALIZED_TICKS:
        tick_bitmap.flip_tick(tick, 1)
    return tick_bitmap


class TestFlipTick:
    def test_is_false_at_first(self):
        assert not TickBitmap().is_initialized(1, 1)

    def test_is_flipped_by_flip_tick(self):
        tick_bitmap = TickBitmap()
        tick_bitmap.flip_tick(1, 1)
        assert tick_bitmap.is_initialized(1, 1)

    def test_is_reverted_by_second_flip(self):
        tick_bitmap = TickBitmap()
        tick_bitmap.flip_tick(1, 1)
        tick_bitmap.flip_tick(1, 1)

        assert not tick_bitmap.is_initialized(1, 1)
        assert tick_bitmap.words == {}

    def test_is_not_changed_by_another_flip_to_a_different_tick(self):
        tick_bitmap = TickBitmap()
        tick_bitmap.flip_tick(2, 1)
        assert not tick_bitmap.is_initialized(1, 1)

    def test_is_not_changed_by_another_flip_to_a_different_tick_on_another_word(self):
        tick_bitmap = TickBitmap()
        tick_bitmap.flip_tick(1 + 256, 1)
        assert tick_bitmap.is_initialized(257, 1)
        assert not tick_bitmap.is_initialized(1, 1)

    def test_flips_only_the_specified_tick(self):
        tick_bitmap = TickBitmap()
        tick_bitmap.flip_tick(-230, 1)

        assert tick_bitmap.is_initialized(-230, 1)
        assert not tick_bitmap.is_initialized(-231, 1)
        assert not tick_bitmap.is_initialized(-229, 1)
        assert not tick_bitmap.is_initialized(-230 + 256, 1)
        assert not tick_bitmap.is_initialized(-230 - 256, 1)

        tick_bitmap.flip_tick(-230, 1)
        assert not tick_bitmap.is_initialized(-230, 1)

    def test_negative_compressed_ticks_use_floor_division(self):
        assert TickBitmap.position(-1) == (-1, 255)
        assert TickBitmap.position(-256) == (-1, 0)
        assert TickBitmap.position(-257) == (-2, 255)

    def test_raises_if_tick_is_not_a_multiple_of_spacing(self):
        with pytest.raises(InvalidTickError):
            TickBitmap().flip_tick(61, 60)

    def test_counts_initialized_ticks(self, bitmap):
        assert len(bitmap) == len(INITIALIZED_TICKS)


class TestNextInitializedTickGreaterThan:
    @pytest.mark.parametrize(
        "tick, expected",
        [
            (78, (84, True)),
            (-55, (-4, True)),
            (77, (78, True)),
            (-56, (-55, True)),
            (255, (511, False)),
            (-257, (-200, True)),
            (383, (511, False)),
            (-1, (70, True)),
        ],
    )
    def test_next_initialized_tick(self, bitmap, tick, expected):
        assert bitmap.next_initialized_tick_within_one_word(tick, 1, False) == expected

    def test_returns_tick_from_the_next_word_when_initialized(self, bitmap):
        bitmap.flip_tick(340, 1)
        assert bitmap.next_initialized_tick_within_one_word(328, 1, False) == (340, True)

    def test_does_not_exceed_boundary(self, bitmap):
        assert bitmap.next_initialized_tick_within_one_word(508, 1, False) == (511, False)


class TestNextInitializedTickLessThanOrEqual:
    @pytest.mark.parametrize(
        "tick, expected",
        [
            (78, (78, True)),
            (79, (78, True)),
            (258, (256, False)),
            (256, (256, False)),
            (72, (70, True)),
            (-257, (-512, False)),
            (1023, (768, False)),
            (900, (768, False)),
        ],
    )
    def test_next_initialized_tick(self, bitmap, tick, expected):
        assert bitmap.next_initialized_tick_within_one_word(tick, 1, True) == expected

    def test_boundary_is_initialized(self, bitmap):
        bitmap.flip_tick(329, 1)
        assert bitmap.next_initialized_tick_within_one_word(456, 1, True) == (329, True)

    def test_compresses_ticks_by_spacing(self):
        tick_bitmap = TickBitmap()
        tick_bitmap.flip_tick(-120, 60)
        tick_bitmap.flip_tick(120, 60)

        assert tick_bitmap.next_initialized_tick_within_one_word(-1, 60, True) == (-120, True)
        assert tick_bitmap.next_initialized_tick_within_one_word(0, 60, False) == (120, True)
        # negative ticks between two usable ticks round towards negative infinity
        assert tick_bitmap.next_initialized_tick_within_one_word(-61, 60, True) == (-120, True)


def test_rebuild_uses_new_spacing(bitmap):
    bitmap.rebuild([-200, 240], 10)

    assert bitmap.is_initialized(-200, 10)
    assert bitmap.is_initialized(240, 10)
    assert not bitmap.is_initialized(78, 1)
    assert len(bitmap) == 2
