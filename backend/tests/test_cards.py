import pytest

from picme.game.cards import EXAMPLE_CARDS, build_card_pool, card_to_dict, load_card_pool


def test_load_card_pool_reads_catalog(tmp_path):
    path = tmp_path / "cards.json"
    path.write_text('[{"id": 1, "title": "Moon", "image": "/images/moon.jpg"}, {"id": 2, "title": "Sea"}]')

    pool = load_card_pool(path)

    assert isinstance(pool, tuple)
    assert [c.id for c in pool] == [1, 2]
    assert card_to_dict(pool[0]) == {"id": 1, "title": "Moon", "imageRef": "/images/moon.jpg"}


def test_missing_catalog_falls_back_to_examples(tmp_path):
    assert load_card_pool(tmp_path / "nope.json") == EXAMPLE_CARDS


def test_bad_json_is_rejected(tmp_path):
    path = tmp_path / "cards.json"
    path.write_text("{not json")
    with pytest.raises(ValueError):
        load_card_pool(path)


def test_duplicate_ids_are_rejected():
    with pytest.raises(ValueError):
        build_card_pool([{"id": 1}, {"id": "1"}])
