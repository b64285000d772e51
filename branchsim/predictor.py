"""Branch target buffer with two-bit saturating-counter prediction."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

_WORD_MASK = 0xFFFFFFFF
_INDEX_START = 2
_LSB_SHARED_START = 2
_MID_SHARED_START = 16
_TARGET_BITS = 30
_VALID_BITS = 1
_FSM_BITS = 2


class FSMState(IntEnum):
    """State of a two-bit saturating counter."""

    STRONGLY_NOT_TAKEN = 0
    WEAKLY_NOT_TAKEN = 1
    WEAKLY_TAKEN = 2
    STRONGLY_TAKEN = 3

    def predicts_taken(self) -> bool:
        """Return True when this state predicts the branch as taken."""
        return self >= FSMState.WEAKLY_TAKEN

    def next(self, taken: bool) -> FSMState:
        """Return the state after observing one branch outcome."""
        if taken:
            return FSMState(min(self + 1, FSMState.STRONGLY_TAKEN))
        return FSMState(max(self - 1, FSMState.STRONGLY_NOT_TAKEN))


class SharedOption(IntEnum):
    """How the branch address is mixed into a shared FSM table index."""

    NOT_SHARED = 0
    LSB_SHARED = 1
    MID_SHARED = 2


def extract_bits(value: int, start: int, count: int) -> int:
    """Return ``count`` bits of ``value`` beginning at bit ``start``."""
    return (value >> start) & ((1 << count) - 1)


def log2_floor(number: int) -> int:
    """Return the position of the highest set bit (0 for 0 and 1)."""
    if number < 0:
        raise ValueError("number must not be negative")
    return max(number.bit_length() - 1, 0)


def fsm_state_from_int(number: int) -> FSMState:
    """Map 0-3 to an FSM state; anything else means weakly not taken."""
    try:
        return FSMState(number)
    except ValueError:
        return FSMState.WEAKLY_NOT_TAKEN


@dataclass
class HistoryRegister:
    """Shift register holding the last ``size`` branch outcomes."""

    size: int
    value: int = 0

    @property
    def mask(self) -> int:
        return (1 << self.size) - 1

    def push(self, taken: bool) -> None:
        """Shift one outcome in, dropping the oldest."""
        self.value = ((self.value << 1) | int(bool(taken))) & self.mask

    def reset(self) -> None:
        """Clear the recorded history."""
        self.value = 0


@dataclass(frozen=True)
class Stats:
    """Simulation counters and the theoretical predictor size in bits."""

    flush_num: int
    br_num: int
    size: int


@dataclass
class _Entry:
    history: HistoryRegister
    table: list[FSMState]
    occupied: bool = False
    tag: int = 0
    target: int = 0


@dataclass
class BranchPredictor:
    """Branch predictor with a BTB and local or global history and tables."""

    btb_size: int
    history_size: int
    tag_size: int
    fsm_state: int
    global_history: bool
    global_table: bool
    shared: int
    _entries: list[_Entry] = field(init=False, repr=False)
    _flushes: int = field(init=False, default=0, repr=False)
    _branches: int = field(init=False, default=0, repr=False)

    def __init__(
        self,
        btb_size: int,
        history_size: int,
        tag_size: int,
        fsm_state: int,
        global_history: bool,
        global_table: bool,
        shared: int,
    ) -> None:
        if btb_size < 1:
            raise ValueError("btb_size must be at least 1")
        if history_size < 0 or tag_size < 0:
            raise ValueError("history_size and tag_size must not be negative")
        try:
            shared_option = SharedOption(shared)
        except ValueError:
            raise ValueError(f"invalid shared option: {shared!r}") from None

        self.btb_size = btb_size
        self.history_size = history_size
        self.tag_size = tag_size
        self.fsm_state = fsm_state_from_int(fsm_state)
        self.global_history = bool(global_history)
        self.global_table = bool(global_table)
        # Sharing only makes sense when the FSM table itself is shared.
        self.shared = shared_option if self.global_table else SharedOption.NOT_SHARED
        self._btb_bits = log2_floor(btb_size)
        self._flushes = 0
        self._branches = 0

        table_len = 1 << history_size
        shared_history = HistoryRegister(history_size)
        shared_table = [self.fsm_state] * table_len
        self._entries = [
            _Entry(
                history=shared_history if self.global_history else HistoryRegister(history_size),
                table=shared_table if self.global_table else [self.fsm_state] * table_len,
            )
            for _ in range(btb_size)
        ]

    def _tag(self, pc: int) -> int:
        return extract_bits(pc, _INDEX_START + self._btb_bits, self.tag_size)

    def _entry(self, pc: int) -> _Entry:
        return self._entries[extract_bits(pc, _INDEX_START, self._btb_bits)]

    def _table_index(self, entry: _Entry, pc: int) -> int:
        history = entry.history.value
        if self.shared is SharedOption.LSB_SHARED:
            return history ^ extract_bits(pc, _LSB_SHARED_START, self.history_size)
        if self.shared is SharedOption.MID_SHARED:
            return history ^ extract_bits(pc, _MID_SHARED_START, self.history_size)
        return history

    def _hit(self, entry: _Entry, pc: int) -> bool:
        return entry.occupied and entry.tag == self._tag(pc)

    def predict(self, pc: int) -> tuple[bool, int]:
        """Return (taken, destination); destination is pc + 4 when not taken."""
        pc &= _WORD_MASK
        entry = self._entry(pc)
        if self._hit(entry, pc) and entry.table[self._table_index(entry, pc)].predicts_taken():
            return True, entry.target
        return False, (pc + 4) & _WORD_MASK

    def update(self, pc: int, target_pc: int, taken: bool, pred_dst: int) -> None:
        """Record the actual outcome of the branch at ``pc``."""
        pc &= _WORD_MASK
        target_pc &= _WORD_MASK
        taken = bool(taken)
        entry = self._entry(pc)
        index = self._table_index(entry, pc)

        if self._hit(entry, pc):
            predicted = entry.table[index].predicts_taken()
            entry.target = target_pc
            if predicted != taken or (taken and pred_dst != target_pc):
                self._flushes += 1
        else:
            entry.occupied = True
            entry.tag = self._tag(pc)
            entry.target = target_pc
            if not self.global_history:
                entry.history.reset()
            if not self.global_table:
                entry.table[:] = [self.fsm_state] * len(entry.table)
            index = self._table_index(entry, pc)
            if taken:
                self._flushes += 1

        entry.table[index] = entry.table[index].next(taken)
        entry.history.push(taken)
        self._branches += 1

    def stats(self) -> Stats:
        """Return flush and branch counts and the predictor size in bits."""
        entry_bits = (self.tag_size + _TARGET_BITS + _VALID_BITS) * self.btb_size
        history_bits = self.history_size * (1 if self.global_history else self.btb_size)
        table_bits = (1 << self.history_size) * _FSM_BITS
        if not self.global_table:
            table_bits *= self.btb_size
        return Stats(
            flush_num=self._flushes,
            br_num=self._branches,
            size=entry_bits + history_bits + table_bits,
        )