import numpy as np
import pytest

from snlds.accuracy import (
    MAX_BRUTE_FORCE_STATES,
    AccuracyReport,
    align_with_hungarian,
    format_report,
    print_report,
)


def test_identity_match_perfect_accuracy():
    truth = np.array([[0, 1, 2, 0, 1, 2]])
    inferred = np.array([[0, 1, 2, 0, 1, 2]])
    report = align_with_hungarian(truth, inferred, 3)
    assert report.accuracy == 1.0
    assert report.correct == 6
    assert report.total == 6
    assert report.permutation == [0, 1, 2]


def test_swapped_labels_match_perfectly_after_permutation():
    truth = np.array([[0, 0, 1, 1, 2, 2]])
    inferred = np.array([[2, 2, 0, 0, 1, 1]])
    report = align_with_hungarian(truth, inferred, 3)
    assert report.accuracy == 1.0
    assert report.correct == 6
    assert report.permutation[2] == 0
    assert report.permutation[0] == 1
    assert report.permutation[1] == 2


def test_partial_accuracy_counts_correctly():
    truth = np.array([[0, 0, 1, 1, 2, 2]])
    inferred = np.array([[0, 0, 1, 2, 2, 1]])
    report = align_with_hungarian(truth, inferred, 3)
    assert report.correct == 4
    assert report.total == 6
    assert abs(report.accuracy - 4.0 / 6.0) < 1e-6


def test_out_of_range_label_rejected():
    truth = np.array([[0, 1, 3]])
    inferred = np.array([[0, 1, 2]])
    with pytest.raises(ValueError, match="out of range"):
        align_with_hungarian(truth, inferred, 3)


def test_negative_inferred_label_rejected():
    truth = np.array([[0, 1, 2]])
    inferred = np.array([[0, -1, 2]])
    with pytest.raises(ValueError, match="inferred_state -1 out of range"):
        align_with_hungarian(truth, inferred, 3)


def test_shape_mismatch_rejected():
    truth = np.array([[0, 1, 2]])
    inferred = np.array([[0, 1]])
    with pytest.raises(ValueError, match="shape"):
        align_with_hungarian(truth, inferred, 3)


def test_confusion_diagonal_is_correct_count():
    truth = np.array([[0, 0, 1, 1, 2, 2]])
    inferred = np.array([[0, 0, 1, 2, 2, 1]])
    report = align_with_hungarian(truth, inferred, 3)
    diagonal_total = sum(int(report.confusion[i, i]) for i in range(3))
    assert diagonal_total == report.correct
    assert int(report.confusion.sum()) == report.total


def test_too_many_states_rejected():
    truth = np.zeros((1, 1), dtype=np.int32)
    inferred = np.zeros((1, 1), dtype=np.int32)
    with pytest.raises(ValueError, match="Hungarian"):
        align_with_hungarian(truth, inferred, MAX_BRUTE_FORCE_STATES + 1)


def test_zero_states_rejected():
    with pytest.raises(ValueError, match="num_states"):
        align_with_hungarian(np.zeros((1, 1), dtype=int), np.zeros((1, 1), dtype=int), 0)


def test_single_state_yields_trivial_perfect_accuracy():
    truth = np.array([[0, 0, 0, 0]])
    inferred = np.array([[0, 0, 0, 0]])
    report = align_with_hungarian(truth, inferred, 1)
    assert report.accuracy == 1.0
    assert report.permutation == [0]
    assert report.correct == 4
    assert report.total == 4


def test_empty_input_rejected():
    truth = np.zeros((0, 4), dtype=np.int32)
    inferred = np.zeros((0, 4), dtype=np.int32)
    with pytest.raises(ValueError, match="no scored timesteps"):
        align_with_hungarian(truth, inferred, 3)


def test_permuted_confusion_moves_columns():
    truth = np.array([[0, 0, 1, 1]])
    inferred = np.array([[1, 1, 0, 0]])
    report = align_with_hungarian(truth, inferred, 2)
    assert report.permutation == [1, 0]
    assert report.confusion.tolist() == [[2, 0], [0, 2]]


def test_four_state_cycle_found():
    truth = np.array([[0, 1, 2, 3, 0, 1, 2, 3]])
    inferred = (truth + 1) % 4
    report = align_with_hungarian(truth, inferred, 4)
    assert report.correct == 8
    assert report.permutation == [3, 0, 1, 2]


def test_format_report_contents():
    report = AccuracyReport(
        permutation=[1, 0],
        accuracy=0.75,
        confusion=np.array([[3, 1], [0, 0]], dtype=np.uint32),
        correct=3,
        total=4,
    )
    text = format_report(report)
    lines = text.splitlines()
    assert lines[0] == "Matched accuracy: 0.7500 (3/4 timesteps)"
    assert lines[1] == "Label mapping (inferred -> true): 0->1, 1->0"
    assert lines[3] == "  truth=0: [     3,      1]"
    assert lines[4] == "  truth=1: [     0,      0]"


def test_print_report_writes_stdout(capsys):
    truth = np.array([[0, 1, 0, 1]])
    report = align_with_hungarian(truth, truth, 2)
    print_report(report)
    out = capsys.readouterr().out
    assert out.startswith("Matched accuracy: 1.0000 (4/4 timesteps)")
    assert out.strip() == format_report(report)