import random

import pytest

from bytemark.neural import (
    IN_SIZE,
    MAXPATS,
    MID_SIZE,
    OUT_SIZE,
    STOP,
    NeuralNet,
    NeuralNetBenchmark,
    Patterns,
    TrainingState,
    parse_patterns,
    read_data_file,
)

O_ROWS = [
    "0 1 1 1 0",
    "1 0 0 0 1",
    "1 0 0 0 1",
    "1 0 0 0 1",
    "1 0 0 0 1",
    "1 0 0 0 0",
    "0 1 1 1 0",
]
O_OUT = "0 1 0 0 1 1 1 1"

I_ROWS = [
    "0 0 1 0 0",
    "0 0 1 0 0",
    "0 0 1 0 0",
    "0 0 1 0 0",
    "0 0 1 0 0",
    "0 0 1 0 0",
    "0 0 1 0 0",
]
I_OUT = "0 1 0 0 1 0 0 1"


def make_text(patterns):
    lines = ["5 7 8", str(len(patterns))]
    for rows, out in patterns:
        lines.extend(rows)
        lines.append(out)
    return "\n".join(lines) + "\n"


@pytest.fixture
def two_patterns():
    return parse_patterns(make_text([(O_ROWS, O_OUT), (I_ROWS, I_OUT)]))


def test_parse_clamps_inputs_and_keeps_outputs(two_patterns):
    assert len(two_patterns) == 2
    assert (two_patterns.x_size, two_patterns.y_size, two_patterns.out_size) == (5, 7, 8)
    first = two_patterns.inputs[0]
    assert len(first) == IN_SIZE
    assert first[:5] == [0.1, 0.9, 0.9, 0.9, 0.1]
    assert set(first) == {0.1, 0.9}
    assert two_patterns.outputs[0] == [0.0, 1.0, 0.0, 0.0, 1.0, 1.0, 1.0, 1.0]


def test_parse_accepts_commas(two_patterns):
    text = make_text([(O_ROWS, O_OUT), (I_ROWS, I_OUT)]).replace(" ", ",")
    assert parse_patterns(text) == two_patterns


def test_parse_limits_pattern_count():
    text = make_text([(O_ROWS, O_OUT)] * (MAXPATS + 2))
    assert len(parse_patterns(text)) == MAXPATS


def test_parse_short_header_raises():
    with pytest.raises(ValueError):
        parse_patterns("5 7")


def test_parse_short_row_raises():
    text = make_text([(O_ROWS, O_OUT)])
    truncated = text.split("\n")
    truncated = "\n".join(truncated[:4])
    with pytest.raises(ValueError):
        parse_patterns(truncated)


def test_parse_rejects_non_integer():
    with pytest.raises(ValueError):
        parse_patterns("5 7 x\n1\n")


def test_read_data_file_matches_parse(tmp_path, two_patterns):
    path = tmp_path / "NNET.DAT"
    path.write_text(make_text([(O_ROWS, O_OUT), (I_ROWS, I_OUT)]))
    assert read_data_file(path) == two_patterns


def test_read_data_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_data_file(tmp_path / "missing.dat")


def test_net_needs_patterns():
    with pytest.raises(ValueError):
        NeuralNet(Patterns(x_size=5, y_size=7, out_size=8))


def test_randomize_weights_ranges_and_determinism(two_patterns):
    a = NeuralNet(two_patterns)
    b = NeuralNet(two_patterns)
    a.randomize_weights(random.Random(3))
    b.randomize_weights(random.Random(3))
    assert a.mid_wts == b.mid_wts
    assert a.out_wts == b.out_wts
    assert all(-0.25 <= w < 0.25 for row in a.mid_wts for w in row)
    assert all(-0.25 <= w < 4.75 for row in a.out_wts for w in row)
    assert len(a.mid_wts) == MID_SIZE and len(a.out_wts) == OUT_SIZE


def test_forward_with_zero_weights_gives_half(two_patterns):
    net = NeuralNet(two_patterns)
    assert net.forward_pass(0) == [0.5] * OUT_SIZE
    assert net.mid_out == [0.5] * MID_SIZE


def test_forward_outputs_in_unit_interval(two_patterns):
    net = NeuralNet(two_patterns)
    net.randomize_weights(random.Random(3))
    outputs = net.forward_pass(1)
    assert len(outputs) == OUT_SIZE
    assert all(0.0 < o < 1.0 for o in outputs)


def test_back_pass_reduces_error(two_patterns):
    net = NeuralNet(two_patterns)
    net.randomize_weights(random.Random(5))
    net.zero_changes()
    target = two_patterns.outputs[0]
    before = sum((t - o) ** 2 for t, o in zip(target, net.forward_pass(0)))
    net.back_pass(0)
    after = sum((t - o) ** 2 for t, o in zip(target, net.forward_pass(0)))
    assert after < before


def test_move_weight_changes(two_patterns):
    net = NeuralNet(two_patterns)
    net.mid_wt_cum_change[2][3] = 1.5
    net.out_wt_cum_change[4][1] = -2.0
    net.move_weight_changes()
    assert net.mid_wt_change[2][3] == 1.5
    assert net.out_wt_change[4][1] == -2.0
    assert all(v == 0.0 for row in net.mid_wt_cum_change for v in row)
    assert all(v == 0.0 for row in net.out_wt_cum_change for v in row)


def test_zero_changes(two_patterns):
    net = NeuralNet(two_patterns)
    net.mid_wt_change[0][0] = 1.0
    net.out_wt_cum_change[7][7] = 2.0
    net.zero_changes()
    tables = [net.mid_wt_change, net.mid_wt_cum_change, net.out_wt_change, net.out_wt_cum_change]
    assert all(v == 0.0 for table in tables for row in table for v in row)


@pytest.mark.parametrize(
    "errors, expected",
    [
        ([0.05, 0.02], TrainingState.LEARNED),
        ([0.5, 0.02], TrainingState.LEARNING),
        ([20.0, 0.02], TrainingState.FAILED),
    ],
)
def test_check_out_error(two_patterns, errors, expected):
    net = NeuralNet(two_patterns)
    net.tot_out_error = list(errors)
    assert net.check_out_error() == expected
    assert net.worst_error == max(errors)


def test_train_learns_patterns(two_patterns):
    net = NeuralNet(two_patterns)
    net.randomize_weights(random.Random(3))
    assert net.train() == TrainingState.LEARNED
    assert net.numpasses > 0
    assert net.worst_error < STOP
    for patt, target in enumerate(two_patterns.outputs):
        outputs = net.forward_pass(patt)
        assert all(abs(t - o) < STOP for t, o in zip(target, outputs))


def test_train_stops_at_max_passes(two_patterns):
    net = NeuralNet(two_patterns, max_passes=1)
    net.randomize_weights(random.Random(3))
    assert net.train() == TrainingState.LEARNING
    assert net.numpasses == 1


def test_benchmark_run(two_patterns):
    bench = NeuralNetBenchmark(patterns=two_patterns, request_secs=0.0, min_secs=0.0)
    result = bench.run()
    assert bench.loops == 1
    assert result.work == 1.0
    assert result.elapsed > 0


def test_benchmark_missing_file(tmp_path):
    bench = NeuralNetBenchmark(path=tmp_path / "none.dat", request_secs=0.0)
    with pytest.raises(FileNotFoundError):
        bench.run()