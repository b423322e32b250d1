import pytest

from loremaster.models import (
    Book,
    Lore,
    NameCategory,
    NameToken,
    Paragraph,
    Sentence,
    TextToken,
    _OrderedToken,
    token_from_json,
)


def test_text_tokens_sort_before_name_tokens() -> None:
    tokens = [
        NameToken("Alice", NameCategory.PERSON),
        TextToken("zebra", "NN"),
        NameToken("Acme", NameCategory.ORGANIZATION),
        TextToken("apple"),
    ]
    assert sorted(tokens) == [
        TextToken("apple"),
        TextToken("zebra", "NN"),
        NameToken("Acme", NameCategory.ORGANIZATION),
        NameToken("Alice", NameCategory.PERSON),
    ]


def test_tokens_compare_secondary_attribute_on_equal_content() -> None:
    assert TextToken("run") < TextToken("run", "NN") < TextToken("run", "VB")
    assert NameToken("Paris", NameCategory.PERSON) < NameToken("Paris", NameCategory.LOCATION)
    assert NameToken("Paris", NameCategory.ORGANIZATION) > NameToken("Paris", NameCategory.PERSON)


def test_tokens_are_hashable_values() -> None:
    assert {TextToken("a", "DT"), TextToken("a", "DT")} == {TextToken("a", "DT")}
    assert TextToken("a") != TextToken("a", "DT")


def test_token_json_forms() -> None:
    assert TextToken("dog", "NN").to_json() == {"text": "dog", "pos": "NN"}
    assert TextToken("dog").to_json() == {"text": "dog"}
    assert NameToken("Rome", NameCategory.LOCATION).to_json() == {"name": "Rome", "category": "Location"}
    assert token_from_json({"text": "dog", "pos": "NN"}) == TextToken("dog", "NN")
    assert token_from_json({"name": "Rome", "category": "location"}) == NameToken("Rome", NameCategory.LOCATION)


def test_token_json_rejects_unknown_shapes() -> None:
    with pytest.raises(ValueError):
        token_from_json({"word": "dog"})
    with pytest.raises(ValueError):
        token_from_json({"name": "Rome", "category": "planet"})


def test_smart_constructors_reject_empty_input() -> None:
    with pytest.raises(ValueError):
        Sentence.of()
    with pytest.raises(ValueError):
        Paragraph.of()
    with pytest.raises(ValueError):
        Lore.of()
    with pytest.raises(ValueError):
        Book.of()
    assert Sentence.from_iterable([]) is None
    assert Book.from_iterable(iter(["one"])) == Book.of("one")


def test_lore_shape_and_book_text() -> None:
    sentence = Sentence.of(TextToken("Hi"))
    lore = Lore.of(Paragraph.of(sentence, sentence), Paragraph.of(sentence))
    assert lore.shape == (2, 1)
    assert str(Book.of("First.", "Second.")) == "First.\r\n\r\nSecond."


def test_token_base_requires_a_sort_key() -> None:
    with pytest.raises(TypeError):
        _OrderedToken()
