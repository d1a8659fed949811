"""Tests for service helpers."""
import pytest

from services.utils import slugify


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("Hello World", "Hello-World"),
        ("  padded   title  ", "padded-title"),
        ("Rust & Go: a comparison!", "Rust-Go-a-comparison"),
        ("snake_case and -- dashes", "snake-case-and-dashes"),
        ("Café déjà vu", "Cafe-deja-vu"),
        ("???", ""),
    ],
)
def test__slugify(value: str, expected: str) -> None:
    assert slugify(value) == expected
