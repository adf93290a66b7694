from backend.tagging.keywords import STOP_WORDS, Keyword, extract_keywords


def test_counts_case_folded_and_ranked():
    kws = extract_keywords("<p>Data Data data engineering</p>", 10)
    assert kws == [Keyword("data", 3), Keyword("engineering", 1)]


def test_empty_input():
    assert extract_keywords("") == []


def test_short_and_stop_words_never_appear():
    kws = extract_keywords("This is the data that would have been there with data", 30)
    words = [k.word for k in kws]
    assert words == ["data"]
    assert all(len(w) > 3 for w in words)
    assert not set(words) & STOP_WORDS


def test_markup_attributes_are_not_counted():
    html = '<a href="https://example.com/secretword" title="secretword">visible linktext</a>'
    words = [k.word for k in extract_keywords(html)]
    assert "secretword" not in words
    assert words == ["visible", "linktext"]


def test_punctuation_splits_words():
    kws = extract_keywords("budget-planning; budget, planning!")
    assert kws == [Keyword("budget", 2), Keyword("planning", 2)]


def test_ties_keep_first_seen_order_and_limit():
    text = "zeta alpha gamma alpha zeta beta"
    kws = extract_keywords(text, 2)
    assert [k.word for k in kws] == ["zeta", "alpha"]
    assert [k.count for k in kws] == [2, 2]


def test_default_limit_is_thirty():
    text = " ".join(f"word{i:03d}" for i in range(50))
    assert len(extract_keywords(text)) == 30
