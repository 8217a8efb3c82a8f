from askrepo.tokenizer import MIN_TOKEN_LENGTH, tokenize, tokenize_ordered


def test_tokenize_splits_camel_case():
    assert tokenize("retryBackoff") == {"retry", "backoff"}
    assert tokenize("featureTransition") == {"feature", "transition"}


def test_tokenize_splits_acronyms_and_digits():
    assert tokenize("XMLParser") == {"xml", "parser"}
    assert tokenize("parseXMLConfig") == {"parse", "xml", "config"}
    assert tokenize("utf8Decode") == {"utf", "decode"}
    assert tokenize("HTTPServer2") == {"http", "server"}
    assert tokenize("ALLCAPS") == {"allcaps"}


def test_tokenize_splits_underscores_and_punctuation():
    assert tokenize("load_config(path)") == {"load", "config", "path"}
    assert tokenize("SNAKE_CASE_name") == {"snake", "case", "name"}
    assert tokenize("a.b-c/d") == set()


def test_tokenize_drops_short_parts():
    assert MIN_TOKEN_LENGTH == 3
    assert tokenize("a an the of it") == {"the"}
    assert tokenize("") == set()


def test_tokenize_is_case_insensitive_and_deduplicated():
    assert tokenize("Cache cache CACHE") == {"cache"}


def test_tokenize_ordered_keeps_first_occurrence():
    assert tokenize_ordered("fooBar barBaz foo") == ["foo", "bar", "baz"]
    assert tokenize_ordered("") == []
