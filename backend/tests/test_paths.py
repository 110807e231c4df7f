import pytest

from keyshare.core.errors import InvalidPath
from keyshare.utils.paths import join_object_path, parse_filename_from_uri, split_object_path
from keyshare.utils.urls import build_public_url


@pytest.mark.parametrize(
    "uri, expected",
    [
        ("/report.pdf", "report.pdf"),
        ("report.pdf", "report.pdf"),
        ("/some/nested/dir/photo.png", "photo.png"),
        ("/dir/trailing/", "trailing"),
        ("/what?.txt", "what?.txt"),
        ("issue#1.log", "issue#1.log"),
        ("new name.txt", "new name.txt"),
    ],
)
def test_parse_filename_takes_final_component(uri, expected):
    assert parse_filename_from_uri(uri) == expected


@pytest.mark.parametrize("uri", ["", "/", "//", "..", "/a/..", "."])
def test_parse_filename_rejects_inputs_without_a_usable_name(uri):
    assert parse_filename_from_uri(uri) is None


def test_split_object_path():
    assert split_object_path("abc/report.pdf") == ("abc", "report.pdf")
    assert split_object_path("/abc/report.pdf") == ("abc", "report.pdf")


@pytest.mark.parametrize("path", ["report.pdf", "a/b/c", "../report.pdf", "abc/..", "abc/", ""])
def test_split_object_path_rejects_malformed_paths(path):
    with pytest.raises(InvalidPath):
        split_object_path(path)


def test_join_and_public_url():
    path = join_object_path("ns", "report.pdf")
    assert path == "ns/report.pdf"
    assert build_public_url("https://cdn.example.com/", path) == "https://cdn.example.com/ns/report.pdf"
    assert build_public_url("https://cdn.example.com", "ns/my file.txt") == "https://cdn.example.com/ns/my%20file.txt"
