import pytest

from sql_replay.classifier import LineClassifier, LineOutcome, classify


@pytest.mark.unit
@pytest.mark.parametrize(
    "line",
    [b"", b"--", b"-- MySQL dump 10.13", b"#comment", b"# ends like a statement;"],
)
def test_blank_and_comment_lines_are_skipped(line):
    assert classify(line) is LineOutcome.SKIP


@pytest.mark.unit
def test_comment_rule_wins_over_terminator():
    assert classify(b"-- DROP TABLE t;") is LineOutcome.SKIP


@pytest.mark.unit
def test_double_dash_without_space_is_not_a_comment():
    assert classify(b"--x") is LineOutcome.INCOMPLETE


@pytest.mark.unit
def test_terminated_line_executes():
    assert classify(b"INSERT INTO t VALUES (1);") is LineOutcome.EXECUTE


@pytest.mark.unit
def test_multiline_statement_is_incomplete_until_terminated():
    lines = [b"CREATE TABLE t (", b"  id int,", b"  name text", b");"]
    outcomes = []
    for end in range(1, len(lines) + 1):
        outcomes.append(classify(b"\n".join(lines[:end])))

    assert outcomes == [LineOutcome.INCOMPLETE] * 3 + [LineOutcome.EXECUTE]


@pytest.mark.unit
def test_statement_text_strips_single_terminator():
    classifier = LineClassifier()
    assert classifier.statement_text(b"SELECT 1;;") == b"SELECT 1;"
    assert classifier.statement_text(b"SELECT 1") == b"SELECT 1"


@pytest.mark.unit
def test_custom_grammar():
    classifier = LineClassifier(comment_prefixes=(b"//",), bare_comments=(), terminator=b"$")

    assert classifier.classify(b"// note$") is LineOutcome.SKIP
    assert classifier.classify(b"--") is LineOutcome.INCOMPLETE
    assert classifier.classify(b"SELECT 1$") is LineOutcome.EXECUTE


@pytest.mark.unit
def test_terminator_must_be_one_byte():
    with pytest.raises(ValueError):
        LineClassifier(terminator=b";;")


@pytest.mark.unit
def test_span_is_classified_in_place():
    classifier = LineClassifier()
    arena = bytearray(b"xx-- note\nSELECT 1;\nINSERT INTO t\n--\n")

    assert classifier.classify_span(arena, 2, 9) is LineOutcome.SKIP
    assert classifier.classify_span(arena, 10, 19) is LineOutcome.EXECUTE
    assert classifier.classify_span(arena, 20, 33) is LineOutcome.INCOMPLETE
    assert classifier.classify_span(arena, 34, 36) is LineOutcome.SKIP
    assert classifier.classify_span(arena, 19, 19) is LineOutcome.SKIP
    # the span end bounds the terminator check
    assert classifier.classify_span(arena, 10, 18) is LineOutcome.INCOMPLETE
