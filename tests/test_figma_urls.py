import pytest

from pixelproof.utils.figma_urls import extract_file_key_from_url, extract_node_id_from_url


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://www.figma.com/file/AbC123/Landing-Page", "AbC123"),
        ("https://www.figma.com/design/XyZ789/Site?node-id=1-2", "XyZ789"),
        ("https://figma.com/proto/Key42", "Key42"),
        ("http://www.figma.com/board/Board1/Ideas", "Board1"),
        ("https://www.figma.com/files/recent", None),
        ("https://evil.example.com/file/AbC123/x", None),
        ("https://www.figma.com.evil.example/file/AbC123", None),
        ("ftp://www.figma.com/file/AbC123", None),
        ("not a url", None),
        ("", None),
    ],
)
def test_extract_file_key_from_url(url, expected):
    assert extract_file_key_from_url(url) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://www.figma.com/design/K/Site?node-id=12-34", "12:34"),
        ("https://www.figma.com/file/K/Site?node-id=12%3A34", "12:34"),
        ("https://www.figma.com/file/K/Site", None),
        ("https://www.figma.com/file/K/Site?node-id=", None),
    ],
)
def test_extract_node_id_from_url(url, expected):
    assert extract_node_id_from_url(url) == expected
