import pytest

from studio_genai.planning.jsonish import extract_json_block, parse_jsonish, to_lines


def test_extract_strips_fences_and_surrounding_prose():
    text = 'Here you go:\n```json\n{"a": 1, "b": [1, 2]}\n```\nThanks!'
    assert extract_json_block(text) == '{"a": 1, "b": [1, 2]}'


def test_extract_ignores_brackets_inside_strings():
    text = 'noise {"title": "a } tricky ] value", "n": {"x": "{"}} trailing }'
    assert extract_json_block(text) == '{"title": "a } tricky ] value", "n": {"x": "{"}}'


def test_extract_returns_first_of_several_blocks():
    assert extract_json_block('[1, 2] and then [3]') == "[1, 2]"


def test_extract_respects_opener_choice():
    text = 'Sure! {"slides": [{"id": 1}]}'
    assert extract_json_block(text, "[") == '[{"id": 1}]'


def test_extract_handles_escaped_quotes():
    text = '{"copy": "she said \\"hi}\\""}'
    assert extract_json_block(text) == text


@pytest.mark.parametrize("text", [None, "", "no json here", '{"open": [1, 2'])
def test_extract_returns_none_without_a_balanced_block(text):
    assert extract_json_block(text) is None


def test_parse_jsonish_raises_value_error_on_garbage():
    with pytest.raises(ValueError):
        parse_jsonish("definitely not json")


def test_to_lines_splits_strings_and_caps():
    assert to_lines("一行目、二行目。三行目\n四行目", 3) == ["一行目", "二行目", "三行目"]
    assert to_lines([" a ", "", 3], 5) == ["a", "3"]
    assert to_lines(None, 5) == []
