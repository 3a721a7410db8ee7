import pytest

from synthlink.domain.categories import PRESET_CATEGORIES, TEMPLATE_CATEGORY, UNKNOWN_CATEGORY, category_name
from synthlink.domain.heuristics import (
    UNSUPPORTED_HEAD,
    UNSUPPORTED_TAIL,
    detect_firmware,
    is_empty_slot,
    is_format_supported,
)


def _chunks(count=40):
    return [bytes(32) for _ in range(count)]


def test_category_names():
    assert len(PRESET_CATEGORIES) == 11
    assert category_name(0) == "Bass"
    assert category_name(7) == "Sequence"
    assert category_name(TEMPLATE_CATEGORY) == "Template"
    assert category_name(11) == UNKNOWN_CATEGORY
    assert category_name(-1) == UNKNOWN_CATEGORY


class TestFirmware:
    def test_marker_means_firmware_1(self):
        chunks = _chunks()
        chunks[0] = bytes(12) + b"\x0c" + bytes(19)
        assert detect_firmware(chunks) == 1

    def test_defaults_to_firmware_2(self):
        assert detect_firmware(_chunks()) == 2

    def test_no_chunks(self):
        assert detect_firmware([]) == 2


class TestFormatSupported:
    def test_known_unsupported_layout(self):
        chunks = _chunks()
        chunks[16] = bytes(32 - len(UNSUPPORTED_TAIL)) + UNSUPPORTED_TAIL
        chunks[17] = UNSUPPORTED_HEAD + bytes(32 - len(UNSUPPORTED_HEAD))
        assert is_format_supported(chunks) is False

    def test_tail_alone_is_not_enough(self):
        chunks = _chunks()
        chunks[16] = bytes(32 - len(UNSUPPORTED_TAIL)) + UNSUPPORTED_TAIL
        chunks[17] = b"\x01" + bytes(31)
        assert is_format_supported(chunks) is True

    def test_short_read_counts_as_supported(self):
        assert is_format_supported(_chunks(17)) is True


class TestEmptySlot:
    @pytest.mark.parametrize("name", ["", "Init", "INIT PRESET", " empty ", "New Preset"])
    def test_placeholder_names(self, name):
        assert is_empty_slot(name, 0)

    def test_template_category(self):
        assert is_empty_slot("Wobble", TEMPLATE_CATEGORY)

    def test_unknown_category(self):
        assert is_empty_slot("Wobble", 42)

    def test_real_preset(self):
        assert not is_empty_slot("Wobble", 0)
        assert not is_empty_slot("Initial", 3)
