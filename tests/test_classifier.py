"""Tests for classifier module."""

import pytest

from songrelay.classifier import (
    MATCHERS,
    CommandKind,
    classify,
    match_comment,
    match_default,
    match_direct,
    match_search,
)


class TestDefaultCommand:
    def test_spaced_form(self):
        cmd = classify("default https://youtu.be/dQw4w9WgXcQ")
        assert cmd.kind is CommandKind.DEFAULT
        assert cmd.payload == "https://youtu.be/dQw4w9WgXcQ"

    def test_bracket_form(self):
        cmd = classify("default[lofi beats]")
        assert cmd.kind is CommandKind.DEFAULT
        assert cmd.payload == "lofi beats"

    def test_bracket_form_with_spaces(self):
        cmd = classify("  DEFAULT [ lofi beats ]  ")
        assert cmd.kind is CommandKind.DEFAULT
        assert cmd.payload == "lofi beats"

    def test_case_insensitive(self):
        assert classify("Default jazz").kind is CommandKind.DEFAULT

    def test_fullwidth_input(self):
        cmd = classify("ｄｅｆａｕｌｔ　ｊａｚｚ")
        assert cmd.kind is CommandKind.DEFAULT
        assert cmd.payload == "jazz"

    def test_keyword_without_argument_is_search(self):
        assert classify("default").kind is CommandKind.SEARCH

    def test_word_prefix_is_not_default(self):
        assert classify("defaulted song").kind is CommandKind.SEARCH


def test_comment_keeps_marker():
    cmd = classify("#nice track")
    assert cmd.kind is CommandKind.COMMENT
    assert cmd.payload == "#nice track"


def test_comment_with_link_stays_comment():
    assert classify("# https://youtu.be/dQw4w9WgXcQ").kind is CommandKind.COMMENT


def test_link_is_direct():
    cmd = classify(" https://www.youtube.com/watch?v=dQw4w9WgXcQ ")
    assert cmd.kind is CommandKind.DIRECT
    assert cmd.payload == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.mark.parametrize("text", ["skip", "Skip", "SKIP", "ｓｋｉｐ", "スキップ"])
def test_skip_tokens_are_direct(text):
    assert classify(text).kind is CommandKind.DIRECT


def test_search_keeps_original_text():
    cmd = classify("  Ｙｏａｓｏｂｉ 夜に駆ける ")
    assert cmd.kind is CommandKind.SEARCH
    assert cmd.payload == "Ｙｏａｓｏｂｉ 夜に駆ける"


def test_matcher_order():
    assert MATCHERS == (match_default, match_comment, match_direct, match_search)
