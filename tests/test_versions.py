import pytest

from launcher.utils.versions import compare_versions, in_range, is_newer


@pytest.mark.parametrize(
    "left, right, expected",
    [
        ("1.4", "1.2", 1),
        ("1.2", "1.4", -1),
        ("1.10", "1.9", 1),
        ("1.0", "1.0.0", 0),
        ("1.2.x", "1.2.3", 1),
        ("abc", "abd", -1),
        ("1.2", "1.2.x", -1),
    ],
)
def test_compare_versions(left, right, expected):
    assert compare_versions(left, right) == expected


def test_is_newer():
    assert is_newer("1.4", "1.2")
    assert not is_newer("1.2", "1.2")
    assert not is_newer("1.1", "1.2")


@pytest.mark.parametrize(
    "current, minimum, maximum, expected",
    [
        ("1.3", "1.0", "2.0", True),
        ("2.0", "1.0", "2.0", True),
        ("2.1", "1.0", "2.0", False),
        ("0.9", "1.0", "", False),
        ("5.0", "1.0", "", True),
        ("1.0", "", "", True),
        ("0.1", "", "1.0", True),
    ],
)
def test_in_range(current, minimum, maximum, expected):
    assert in_range(current, minimum, maximum) is expected


def test_empty_version_is_oldest():
    assert compare_versions("", "") == 0
    assert compare_versions("", "0.1") == -1
    assert compare_versions("1.2.x", "") == 1
    assert is_newer("1.4", "")
    assert not is_newer("", "1.4")
