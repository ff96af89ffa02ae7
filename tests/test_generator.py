"""
Тесты для генератора кодов доступа
"""
import string

import pytest

from certdesk.generator import AccessCodeGenerator


class TestAccessCodeGenerator:
    """Тесты для класса AccessCodeGenerator"""

    @pytest.fixture
    def generator(self):
        """Фикстура для генератора"""
        return AccessCodeGenerator()

    def test_generate_code_format(self, generator):
        """Код состоит из двух фрагментов base-36 по 13 символов"""
        code = generator.generate()

        assert len(code) == 26
        assert all(c in string.digits + string.ascii_lowercase for c in code)
        assert generator.validate_format(code) is True

    def test_generated_codes_are_distinct(self, generator):
        """Коды не повторяются на большой выборке"""
        codes = {generator.generate() for _ in range(1000)}

        assert len(codes) == 1000

    def test_generate_joins_two_fragments(self, generator, monkeypatch):
        """Код склеивается из двух фрагментов без разделителя"""
        fragments = iter(["a" * 13, "b" * 13])
        monkeypatch.setattr(generator, "_generate_fragment", lambda: next(fragments))

        assert generator.generate() == "a" * 13 + "b" * 13

    def test_validate_format_invalid(self, generator):
        """Некорректные коды"""
        invalid_codes = [
            "",
            "short",
            "A" * 26,  # Верхний регистр
            "a" * 25,
            "a" * 27,
            "a" * 12 + "-" + "a" * 13,
        ]

        for code in invalid_codes:
            assert generator.validate_format(code) is False

    def test_custom_fragment_length(self):
        """Длина фрагмента настраивается"""
        generator = AccessCodeGenerator(fragment_length=8)

        assert len(generator.generate()) == 16
        assert generator.code_length == 16
