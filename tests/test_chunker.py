import pytest

from translation_machine.translation.chunker import (
    MAX_INPUT_TOKENS,
    chunk_text,
    estimate_tokens,
    input_budget,
    split_by_sentences,
)


def word_count(text):
    return len(text.split())


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abc") == 1
    assert estimate_tokens("a" * 35) == 10
    assert estimate_tokens("a" * 36) == 11


def test_small_paragraphs_share_one_chunk():
    assert chunk_text("A.\n\nB.", max_tokens=100) == ["A.\n\nB."]


def test_greedy_grouping_by_words():
    paragraphs = ["one two three four five", "six seven eight nine ten", "eleven twelve thirteen fourteen fifteen"]
    chunks = chunk_text("\n\n".join(paragraphs), max_tokens=10, estimator=word_count)

    assert chunks == [paragraphs[0] + "\n\n" + paragraphs[1], paragraphs[2]]


def test_greedy_grouping_counts_the_paragraph_separator():
    paragraph = "x" * 35  # 10 tokens
    text = "\n\n".join([paragraph] * 3)

    # Two paragraphs plus separator are 72 chars -> 21 tokens
    assert chunk_text(text, max_tokens=21) == [paragraph + "\n\n" + paragraph, paragraph]
    assert chunk_text(text, max_tokens=20) == [paragraph, paragraph, paragraph]


def test_empty_and_whitespace_input_give_no_chunks():
    assert chunk_text("", max_tokens=10) == []
    assert chunk_text("  \n\n \t \n\n", max_tokens=10) == []


def test_blank_paragraphs_are_dropped_and_trimmed():
    assert chunk_text("  first  \n\n\n   \n\n second ", max_tokens=100) == ["first\n\nsecond"]


def test_oversize_paragraph_is_split_by_sentence():
    paragraph = "Alpha beta gamma. Delta epsilon zeta. Eta theta iota."
    chunks = chunk_text(paragraph, max_tokens=4, estimator=word_count)

    assert chunks == ["Alpha beta gamma.", "Delta epsilon zeta.", "Eta theta iota."]


def test_oversize_paragraph_tail_stays_open_for_next_paragraph():
    text = "One two three. Four five.\n\nSix."
    chunks = chunk_text(text, max_tokens=3, estimator=word_count)

    assert chunks == ["One two three.", "Four five.\n\nSix."]


def test_oversize_sentence_falls_back_to_words():
    sentence = "one two three four five six seven"
    assert split_by_sentences(sentence, 3, word_count) == ["one two three", "four five six", "seven"]


def test_single_huge_word_is_emitted_alone():
    word = "x" * 100
    chunks = chunk_text(f"short\n\n{word}\n\ntail", max_tokens=5)

    assert word in chunks
    assert chunks[0] == "short"
    assert chunks[-1] == "tail"


def test_chunks_respect_budget_and_keep_all_words():
    text = "\n\n".join(
        " ".join(f"word{p}_{s}_{w}." if w == 7 else f"word{p}_{s}_{w}" for w in range(8))
        for p in range(6) for s in range(3)
    )
    chunks = chunk_text(text, max_tokens=15)

    assert all(estimate_tokens(chunk) <= 15 for chunk in chunks)
    assert " ".join(" ".join(chunks).split()) == " ".join(text.split())


def test_non_positive_budget_is_rejected():
    with pytest.raises(ValueError):
        chunk_text("text", max_tokens=0)


def test_input_budget_subtracts_prompt_and_caps():
    prompt = "p" * 350  # 100 tokens
    assert input_budget(4000, prompt) == 3900
    assert input_budget(20000, prompt) == MAX_INPUT_TOKENS
    assert input_budget(50, prompt) == 1
