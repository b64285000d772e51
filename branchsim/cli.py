"""Command-line trace runner for the branch predictor."""

from __future__ import annotations

import re
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TextIO

from branchsim.predictor import BranchPredictor, SharedOption, Stats

_WORD_MASK = 0xFFFFFFFF
_CONFIG_MESSAGE = "Error in input file: cannot read config"
_TRACE_MESSAGE = "Error in input file: bad trace"
_INIT_MESSAGE = "Predictor init failed"

_INT_PREFIX = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")
_DELIMITERS = re.compile(r"[ \n]+")

_HISTORY_KINDS = {"local_history": False, "global_history": True}
_TABLE_KINDS = {"local_tables": False, "global_tables": True}
_SHARE_KINDS = {
    "not_using_share": SharedOption.NOT_SHARED,
    "using_share_lsb": SharedOption.LSB_SHARED,
    "using_share_mid": SharedOption.MID_SHARED,
}


class TraceError(Exception):
    """A malformed trace file; ``exit_code`` is the status the command exits with."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


@dataclass(frozen=True)
class Config:
    """Predictor parameters read from the first line of a trace."""

    btb_size: int
    history_size: int
    tag_size: int
    fsm_state: int
    global_history: bool
    global_table: bool
    shared: SharedOption


def _parse_int(token: str) -> int:
    """Read a leading integer with C-style base detection; 0 if there is none."""
    match = _INT_PREFIX.match(token)
    if match is None:
        return 0
    sign, digits = match.groups()
    if digits[:2] in ("0x", "0X"):
        value = int(digits[2:], 16)
    elif digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    return -value if sign == "-" else value


def _tokens(line: str) -> list[str]:
    return [token for token in _DELIMITERS.split(line) if token]


def parse_config(line: str) -> Config:
    """Parse the configuration line of a trace."""
    tokens = _tokens(line)
    if len(tokens) < 7:
        raise TraceError(_CONFIG_MESSAGE, 3)
    btb_size, history_size, tag_size, fsm_state = (_parse_int(t) for t in tokens[:4])
    if btb_size == 0 or history_size == 0:
        raise TraceError(_CONFIG_MESSAGE, 4)
    history_kind, table_kind, share_kind = tokens[4:7]
    if history_kind not in _HISTORY_KINDS:
        raise TraceError(_CONFIG_MESSAGE, 5)
    if table_kind not in _TABLE_KINDS:
        raise TraceError(_CONFIG_MESSAGE, 6)
    if share_kind not in _SHARE_KINDS:
        raise TraceError(_CONFIG_MESSAGE, 7)
    return Config(
        btb_size=btb_size,
        history_size=history_size,
        tag_size=tag_size,
        fsm_state=fsm_state,
        global_history=_HISTORY_KINDS[history_kind],
        global_table=_TABLE_KINDS[table_kind],
        shared=_SHARE_KINDS[share_kind],
    )


def parse_branch(line: str) -> tuple[int, bool, int]:
    """Parse one trace line into (pc, taken, target)."""
    tokens = _tokens(line)
    if len(tokens) < 3:
        raise TraceError(_TRACE_MESSAGE, 9)
    pc_token, outcome, target_token = tokens[:3]
    if outcome == "T":
        taken = True
    elif outcome == "N":
        taken = False
    else:
        raise TraceError(_TRACE_MESSAGE, 9)
    return _parse_int(pc_token) & _WORD_MASK, taken, _parse_int(target_token) & _WORD_MASK


def _build_predictor(config: Config) -> BranchPredictor:
    try:
        return BranchPredictor(
            config.btb_size,
            config.history_size,
            config.tag_size,
            config.fsm_state,
            config.global_history,
            config.global_table,
            config.shared,
        )
    except ValueError:
        raise TraceError(_INIT_MESSAGE, 8) from None


def simulate(lines: Iterable[str], out: TextIO) -> Stats:
    """Run a trace, writing each prediction and the final stats to ``out``."""
    line_iter = iter(lines)
    try:
        first = next(line_iter)
    except StopIteration:
        raise TraceError(_CONFIG_MESSAGE, 3) from None
    predictor = _build_predictor(parse_config(first))

    for line in line_iter:
        if line.startswith("\n"):
            break
        pc, taken, target = parse_branch(line)
        predicted, dst = predictor.predict(pc)
        out.write(f"0x{pc:x} {'T' if predicted else 'N'} 0x{dst:x}\n")
        predictor.update(pc, target, taken, dst)

    stats = predictor.stats()
    out.write(
        f"flush_num: {stats.flush_num}, br_num: {stats.br_num}, size: {stats.size}b\n"
    )
    return stats


def main(argv: Sequence[str] | None = None) -> int:
    """Simulate the trace file named on the command line."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("Usage: branchsim <trace filename>", file=sys.stderr)
        return 1
    try:
        trace = open(args[0], encoding="utf-8")
    except OSError:
        print("cannot open trace file", file=sys.stderr)
        return 2
    with trace:
        try:
            simulate(trace, sys.stdout)
        except TraceError as error:
            print(error, file=sys.stderr)
            return error.exit_code
    return 0