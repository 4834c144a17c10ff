from launcher.models import ModPath


def test_parse_lowercases_and_splits():
    path = ModPath.parse("WoG.Extras")

    assert path.segments == ("wog", "extras")
    assert str(path) == "wog.extras"
    assert ModPath.parse(str(path)) == path


def test_new_is_top_level():
    path = ModPath.new("hota")

    assert path.is_top()
    assert path.top() == "hota"
    assert path.name == "hota"


def test_nested_path():
    path = ModPath.new("wog").child("extras").child("music")

    assert not path.is_top()
    assert path.top() == "wog"
    assert path.name == "music"
    assert path.parent == ModPath.parse("wog.extras")
    assert len(path) == 3
    assert list(path) == ["wog", "extras", "music"]


def test_empty_path():
    path = ModPath()

    assert not path
    assert path.top() == ""
    assert not path.is_top()


def test_structural_equality_and_ordering():
    paths = {ModPath.parse("b"), ModPath.parse("a.c"), ModPath.parse("A.C"), ModPath.parse("a")}

    assert len(paths) == 3
    assert sorted(paths) == [ModPath.parse("a"), ModPath.parse("a.c"), ModPath.parse("b")]
