"""Tests for Cyrillic transliteration and filename cleanup."""

import re

import pytest

from sheet_images.utils import CYRILLIC_TO_LATIN, transliterate


class TestTransliterate:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Щука", "shchuka"),
            ("Привіт світ", "pryvit-svit"),
            ("Пам'ять", "pamyat"),
            ("Їжак", "yizhak"),
            ("Ґанок", "ganok"),
            ("ёлка", "elka"),
            ("съезд", "sezd"),
            ("photo_01.JPG", "photo01jpg"),
            ("naïve café", "nave-caf"),
            ("", ""),
        ],
    )
    def test_known_words(self, value, expected):
        assert transliterate(value) == expected

    def test_soft_sign_is_dropped(self):
        assert transliterate("Ь") == ""
        assert transliterate("сіль") == "sil"

    def test_output_alphabet(self):
        every_letter = "".join(CYRILLIC_TO_LATIN) + " !@#$%^&*()_+=.,/?<>[]{}"
        assert re.fullmatch(r"[a-z0-9-]*", transliterate(every_letter))

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            CYRILLIC_TO_LATIN["Щ"] = "Sc"  # type: ignore[index]
