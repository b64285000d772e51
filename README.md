# branchsim

A branch predictor simulator. It models a branch target buffer (BTB) whose
entries carry a tag and a target address, paired with two-bit saturating
counters indexed by branch history. History and counter tables can each be
global or per-entry, and a global table can be indexed gshare-style by XOR-ing
the history with bits taken from the low (bit 2 upward) or middle (bit 16
upward) part of the branch address. With per-entry tables the share option is
ignored.

## Installing

```
pip install .
```

## Running a trace

```
branchsim trace.txt
```

The first line of the trace holds the configuration:

```
<btb_size> <history_size> <tag_size> <fsm_state> <history> <tables> <share>
```

- `btb_size`: number of BTB entries (a power of two)
- `history_size`: number of history bits
- `tag_size`: number of tag bits
- `fsm_state`: initial counter state, 0 (strongly not taken) to 3 (strongly
  taken); any other value means weakly not taken
- `history`: `local_history` or `global_history`
- `tables`: `local_tables` or `global_tables`
- `share`: `not_using_share`, `using_share_lsb` or `using_share_mid`

Numbers may be written in decimal, hexadecimal (`0x...`) or octal (leading `0`).
Each following line describes one executed branch; an empty line ends the trace:

```
<pc> <T|N> <target>
```

For example:

```
4 2 10 1 global_history global_tables using_share_lsb
0x108 T 0x200
0x108 T 0x200
0x10c N 0x300
```

For every branch the simulator prints the address, its prediction and the
predicted destination (the address plus 4 when predicted not taken), and at
the end the number of pipeline flushes, the number of branches and the
theoretical size of the predictor in bits:

```
0x108 N 0x10c
0x108 N 0x10c
0x10c N 0x110
flush_num: 2, br_num: 3, size: 174b
```

Errors are reported on standard error and the command exits with a non-zero
status: 1 when no file is given, 2 when the file cannot be opened, 3 to 7 for
a bad configuration line, 8 when the predictor cannot be built from the
configuration, and 9 for a bad branch line.

## Using it from Python

```python
from branchsim.predictor import BranchPredictor

bp = BranchPredictor(
    btb_size=4,
    history_size=2,
    tag_size=10,
    fsm_state=1,
    global_history=True,
    global_table=True,
    shared=0,
)

taken, dst = bp.predict(0x108)
bp.update(0x108, 0x200, True, dst)
print(bp.stats())  # Stats(flush_num=1, br_num=1, size=174)
```

`branchsim.predictor` also provides `FSMState`, `SharedOption`,
`HistoryRegister`, `Stats` and the helpers `extract_bits`, `log2_floor` and
`fsm_state_from_int`.

`branchsim.cli` offers `parse_config`, `parse_branch` and `simulate(lines, out)`
for driving a run from any iterable of trace lines; malformed input raises
`TraceError`, whose `exit_code` is the status the command would exit with.