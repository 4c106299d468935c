#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Test tokenization and the preprocessing pipeline
"""

import pytest

from FileSimilarity.config import DEFAULT_CONFIG
from FileSimilarity.preprocessing.document import FileEntry
from FileSimilarity.preprocessing.preprocess import (
    LowercasePreprocessor,
    MinLengthPreprocessor,
    NGramPreprocessor,
    PreprocessingPipeline,
    RemoveDiacriticsPreprocessor,
    create_pipeline,
)
from FileSimilarity.preprocessing.tokenizer import RegexMatchTokenizer, TokenType


def terms(text, *preprocessors):
    pipeline = PreprocessingPipeline([LowercasePreprocessor(), *preprocessors])
    return FileEntry(text).tokenize().preprocess(pipeline).get_terms()


def test_split_on_non_alphanumeric():
    tokens = RegexMatchTokenizer().tokenize("report_final_v2.txt")

    assert [t.processed_form for t in tokens] == ["report", "final", "v2", "txt"]
    assert [t.position for t in tokens] == [0, 7, 13, 16]


def test_empty_pieces_are_discarded():
    assert RegexMatchTokenizer().tokenize("__a--b..") != []
    assert [t.original_form for t in RegexMatchTokenizer().tokenize("__a--b..")] == ["a", "b"]
    assert RegexMatchTokenizer().tokenize("_-. /") == []
    assert RegexMatchTokenizer().tokenize("") == []


def test_number_tokens():
    tokens = RegexMatchTokenizer().tokenize("scan 2024.pdf")

    assert [t.token_type for t in tokens] == [TokenType.WORD, TokenType.NUMBER, TokenType.WORD]


def test_lowercase():
    assert terms("Report-FINAL 2024.TXT") == ["report", "final", "2024", "txt"]


def test_unicode_letters_are_not_delimiters():
    assert terms("Café_Ünïcode.md") == ["café", "ünïcode", "md"]
    assert terms("Café_Ünïcode.md", RemoveDiacriticsPreprocessor()) == ["cafe", "unicode", "md"]


def test_min_length_keeps_numbers():
    assert terms("a_bb_ccc_12", MinLengthPreprocessor(min_length=3)) == ["ccc", "12"]


def test_ngram_windows():
    assert terms("report_final.txt", NGramPreprocessor(n=2)) == ["report.final", "final.txt"]
    assert terms("report_final.txt", NGramPreprocessor(n=3)) == ["report.final.txt"]
    assert terms("report_final.txt", NGramPreprocessor(n=4)) == []


def test_ngram_length_is_bounded():
    with pytest.raises(ValueError):
        NGramPreprocessor(n=5)


def test_default_pipeline_only_lowercases():
    pipeline = create_pipeline(DEFAULT_CONFIG)

    assert pipeline.name == "Lowercase"


def test_configured_pipeline_order():
    config = {
        "preprocessing": {"lowercase": True, "remove_diacritics": True, "min_token_length": 2, "ngram": 2},
        "pipeline_order": ["tokenize", "lowercase", "remove_diacritics", "min_length", "ngram"],
    }
    pipeline = create_pipeline(config)
    entry = FileEntry("Ölflasche_a_Übung.txt").tokenize().preprocess(pipeline)

    assert pipeline.name == "Lowercase+RemoveDiacritics+MinLength(2)+NGram(2)"
    assert entry.get_terms() == ["olflasche.ubung", "ubung.txt"]


def test_entry_term_frequencies():
    entry = FileEntry("copy_of_copy.txt").tokenize().preprocess(create_pipeline(DEFAULT_CONFIG))

    assert entry.term_frequencies() == {"copy": 2, "of": 1, "txt": 1}
