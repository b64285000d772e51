import pytest

from branchsim.predictor import (
    BranchPredictor,
    FSMState,
    HistoryRegister,
    SharedOption,
    Stats,
    extract_bits,
    fsm_state_from_int,
    log2_floor,
)


@pytest.mark.parametrize("start,count", [(0, 4), (2, 8), (16, 3), (5, 0)])
def test_extract_bits_round_trip(start, count):
    value = (1 << count) - 1 if count else 0
    low = (1 << start) - 1
    packed = (value << start) | low | (1 << (start + count))
    assert extract_bits(packed, start, count) == value


def test_extract_bits_zero_count():
    assert extract_bits(0xFFFF, 3, 0) == 0


@pytest.mark.parametrize("k", range(0, 12))
def test_log2_floor_powers(k):
    assert log2_floor(1 << k) == k
    assert log2_floor((1 << (k + 1)) - 1) == k


def test_log2_floor_zero_and_negative():
    assert log2_floor(0) == 0
    with pytest.raises(ValueError):
        log2_floor(-1)


@pytest.mark.parametrize("n", range(4))
def test_fsm_state_from_int_valid(n):
    assert fsm_state_from_int(n) == FSMState(n)


@pytest.mark.parametrize("n", [4, 7, -1])
def test_fsm_state_from_int_default(n):
    assert fsm_state_from_int(n) is FSMState.WEAKLY_NOT_TAKEN


def test_fsm_predictions():
    assert not FSMState.STRONGLY_NOT_TAKEN.predicts_taken()
    assert not FSMState.WEAKLY_NOT_TAKEN.predicts_taken()
    assert FSMState.WEAKLY_TAKEN.predicts_taken()
    assert FSMState.STRONGLY_TAKEN.predicts_taken()


def test_fsm_saturates():
    assert FSMState.STRONGLY_TAKEN.next(True) is FSMState.STRONGLY_TAKEN
    assert FSMState.STRONGLY_NOT_TAKEN.next(False) is FSMState.STRONGLY_NOT_TAKEN


def test_fsm_walks_through_states():
    state = FSMState.STRONGLY_NOT_TAKEN
    seen = [state]
    for _ in range(3):
        state = state.next(True)
        seen.append(state)
    assert seen == list(FSMState)
    for expected in reversed(list(FSMState)[:-1]):
        state = state.next(False)
        assert state is expected


def test_history_register_masks_and_resets():
    reg = HistoryRegister(3)
    for _ in range(10):
        reg.push(True)
        assert reg.value < (1 << 3)
    assert reg.value == reg.mask
    reg.push(False)
    assert reg.value == reg.mask - 1
    reg.reset()
    assert reg.value == 0


def test_empty_predictor_predicts_fallthrough():
    bp = BranchPredictor(4, 2, 8, 3, True, True, 0)
    assert bp.predict(0x1230) == (False, 0x1234)


def test_fallthrough_wraps_at_32_bits():
    bp = BranchPredictor(4, 2, 8, 3, True, True, 0)
    assert bp.predict(0xFFFFFFFC) == (False, 0)


def test_invalid_arguments():
    with pytest.raises(ValueError):
        BranchPredictor(4, 2, 8, 1, True, True, 5)
    with pytest.raises(ValueError):
        BranchPredictor(0, 2, 8, 1, True, True, 0)


def test_local_tables_force_not_shared():
    bp = BranchPredictor(4, 2, 8, 1, True, False, SharedOption.MID_SHARED)
    assert bp.shared is SharedOption.NOT_SHARED


def test_first_taken_update_flushes_and_learns_target():
    bp = BranchPredictor(4, 2, 8, FSMState.STRONGLY_TAKEN, True, True, 0)
    _, dst = bp.predict(0x100)
    bp.update(0x100, 0x200, True, dst)
    stats = bp.stats()
    assert stats.flush_num == stats.br_num
    assert bp.predict(0x100) == (True, 0x200)


def test_not_taken_miss_does_not_flush():
    bp = BranchPredictor(4, 2, 8, 1, True, True, 0)
    bp.update(0x100, 0x200, False, 0x104)
    stats = bp.stats()
    assert stats.flush_num == 0
    assert stats.br_num == 1


def test_wrong_target_flushes():
    bp = BranchPredictor(4, 2, 8, FSMState.STRONGLY_TAKEN, True, True, 0)
    bp.update(0x100, 0x200, True, 0x104)
    taken, dst = bp.predict(0x100)
    assert (taken, dst) == (True, 0x200)
    before = bp.stats().flush_num
    bp.update(0x100, 0x300, True, dst)
    assert bp.stats().flush_num == before + 1
    assert bp.predict(0x100) == (True, 0x300)
    before = bp.stats().flush_num
    bp.update(0x100, 0x300, True, 0x300)
    assert bp.stats().flush_num == before


def test_tag_mismatch_misses():
    bp = BranchPredictor(4, 2, 8, FSMState.STRONGLY_TAKEN, True, True, 0)
    bp.update(0x100, 0x200, True, 0x104)
    other = 0x100 | (1 << 6)  # same index bits, different tag
    assert bp.predict(other) == (False, other + 4)


def test_br_num_counts_updates():
    bp = BranchPredictor(8, 3, 10, 1, False, False, 0)
    trace = [(0x10, 0x40, True), (0x14, 0x80, False), (0x10, 0x40, True), (0x18, 0x20, True)]
    for pc, target, taken in trace:
        _, dst = bp.predict(pc)
        bp.update(pc, target, taken, dst)
    stats = bp.stats()
    assert stats.br_num == len(trace)
    assert 0 <= stats.flush_num <= stats.br_num


def test_size_global_global():
    bp = BranchPredictor(4, 2, 8, 1, True, True, 0)
    assert bp.stats() == Stats(flush_num=0, br_num=0, size=166)


def test_local_sizes_grow_with_btb():
    sizes = {
        (gh, gt): BranchPredictor(4, 2, 8, 1, gh, gt, 0).stats().size
        for gh in (True, False)
        for gt in (True, False)
    }
    assert sizes[(False, True)] > sizes[(True, True)]
    assert sizes[(True, False)] > sizes[(True, True)]
    assert sizes[(False, False)] > max(sizes[(False, True)], sizes[(True, False)])


@pytest.mark.parametrize(
    "shared,probe",
    [(SharedOption.MID_SHARED, 0x10000), (SharedOption.LSB_SHARED, 0x4)],
)
def test_shared_index_uses_pc_bits(shared, probe):
    plain = BranchPredictor(1, 2, 0, FSMState.WEAKLY_NOT_TAKEN, True, True, SharedOption.NOT_SHARED)
    mixed = BranchPredictor(1, 2, 0, FSMState.WEAKLY_NOT_TAKEN, True, True, shared)
    for bp in (plain, mixed):
        bp.update(0x0, 0x500, True, 0x4)
    assert plain.predict(probe) == (False, probe + 4)
    assert mixed.predict(probe) == (True, 0x500)


def test_local_tables_not_shared_even_when_requested():
    bp = BranchPredictor(1, 2, 0, FSMState.WEAKLY_NOT_TAKEN, True, False, SharedOption.MID_SHARED)
    bp.update(0x0, 0x500, True, 0x4)
    assert bp.predict(0x10000) == (False, 0x10004)


def _train_then_replace(global_table):
    bp = BranchPredictor(1, 2, 8, FSMState.WEAKLY_NOT_TAKEN, False, global_table, 0)
    for _ in range(4):
        _, dst = bp.predict(0x0)
        bp.update(0x0, 0x500, True, dst)
    assert bp.predict(0x0) == (True, 0x500)
    bp.update(0x4, 0x600, True, 0x8)
    return bp.predict(0x4)


def test_replacement_resets_local_tables():
    assert _train_then_replace(global_table=False) == (False, 0x8)


def test_replacement_keeps_global_table():
    assert _train_then_replace(global_table=True) == (True, 0x600)