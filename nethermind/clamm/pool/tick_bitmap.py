import logging
from typing import Iterable

from nethermind.clamm.exceptions import InvalidTickError

from .journal import StateJournal

root_logger = logging.getLogger("nethermind")
logger = root_logger.getChild("clamm").getChild("pool").getChild("tick_bitmap")

WORD_SIZE = 256
WORD_MASK = 2**WORD_SIZE - 1


def _most_significant_bit(word: int) -> int:
    return word.bit_length() - 1


def _least_significant_bit(word: int) -> int:
    return (word & -word).bit_length() - 1


class TickBitmap:
    """
    Packed bitmap of initialized ticks.  Ticks are compressed by the tick spacing, and each compressed tick is
    mapped to one bit of a 256 bit word.  Words that hold no initialized ticks are removed from the mapping, so
    an empty pool carries an empty dictionary.

    The bitmap is derived entirely from the tick table: a bit is set if and only if the tick holds non-zero gross
    liquidity.
    """

    words: dict[int, int]
    journal: StateJournal

    def __init__(self, words: dict[int, int] | None = None, journal: StateJournal | None = None):
        self.words = words if words is not None else {}
        self.journal = journal if journal is not None else StateJournal()

    @staticmethod
    def position(compressed_tick: int) -> tuple[int, int]:
        """
        Returns the word index and bit position of a compressed tick.  Negative ticks use floor semantics, so
        compressed tick -1 is bit 255 of word -1.
        """
        return compressed_tick >> 8, compressed_tick % WORD_SIZE

    def flip_tick(self, tick: int, tick_spacing: int):
        """
        Flips the initialized state of a tick from False to True, or from True to False

        :param tick: tick to flip.  Must be a multiple of tick_spacing
        :param tick_spacing: spacing between usable ticks
        """
        if tick % tick_spacing != 0:
            raise InvalidTickError(f"Tick {tick} is not a multiple of tick spacing {tick_spacing}")

        word_pos, bit_pos = self.position(tick // tick_spacing)
        self.journal.record_item(self.words, word_pos)
        word = self.words.get(word_pos, 0) ^ (1 << bit_pos)

        if word:
            self.words[word_pos] = word
        else:
            self.words.pop(word_pos, None)

    def is_initialized(self, tick: int, tick_spacing: int) -> bool:
        """Returns True if the bit for tick is set"""
        if tick % tick_spacing != 0:
            return False
        word_pos, bit_pos = self.position(tick // tick_spacing)
        return bool(self.words.get(word_pos, 0) & (1 << bit_pos))

    def next_initialized_tick_within_one_word(
        self,
        tick: int,
        tick_spacing: int,
        lte: bool,
    ) -> tuple[int, bool]:
        """
        Returns the next initialized tick contained in the same word (or adjacent word) as the tick that is either
        to the left (less than or equal to) or right (greater than) of the given tick.

        If no tick is initialized within the word, the boundary of the word is returned with initialized set to
        False, and the caller continues searching from that boundary.

        :param tick: starting tick
        :param tick_spacing: spacing between usable ticks
        :param lte: whether to search for the next initialized tick to the left (less than or equal to the
            starting tick)
        :return: (next tick, whether the next tick is initialized)
        """
        compressed = tick // tick_spacing

        if lte:
            word_pos, bit_pos = self.position(compressed)
            # all the 1s at or to the right of the current bit_pos
            mask = (1 << bit_pos) - 1 + (1 << bit_pos)
            masked = self.words.get(word_pos, 0) & mask

            initialized = masked != 0
            if initialized:
                next_tick = (compressed - (bit_pos - _most_significant_bit(masked))) * tick_spacing
            else:
                next_tick = (compressed - bit_pos) * tick_spacing
            return next_tick, initialized

        # start from the word of the next tick, since the current tick state doesn't matter
        word_pos, bit_pos = self.position(compressed + 1)
        # all the 1s at or to the left of the bit_pos
        mask = ~((1 << bit_pos) - 1) & WORD_MASK
        masked = self.words.get(word_pos, 0) & mask

        initialized = masked != 0
        if initialized:
            next_tick = (compressed + 1 + (_least_significant_bit(masked) - bit_pos)) * tick_spacing
        else:
            next_tick = (compressed + 1 + (WORD_SIZE - 1 - bit_pos)) * tick_spacing
        return next_tick, initialized

    def rebuild(self, ticks: Iterable[int], tick_spacing: int):
        """
        Discards all words and sets the bit of every tick in ticks using a new tick spacing.  Used when the tick
        spacing of a pool is changed.
        """
        self.journal.record_attr(self, "words")
        self.words = {}
        for tick in ticks:
            self.flip_tick(tick, tick_spacing)
        logger.debug(f"Rebuilt tick bitmap with spacing {tick_spacing}: {len(self.words)} words")

    def __len__(self) -> int:
        return sum(bin(word).count("1") for word in self.words.values())
