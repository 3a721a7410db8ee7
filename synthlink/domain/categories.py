from __future__ import annotations


# Order matches the category selector on the MicroFreak (index 0..10).
PRESET_CATEGORIES: tuple[str, ...] = (
    "Bass",
    "Brass",
    "Keys",
    "Lead",
    "Organ",
    "Pad",
    "Percussion",
    "Sequence",
    "SFX",
    "Strings",
    "Template",
)

UNKNOWN_CATEGORY = "Unknown"
TEMPLATE_CATEGORY = PRESET_CATEGORIES.index("Template")


def category_name(index: int) -> str:
    if 0 <= index < len(PRESET_CATEGORIES):
        return PRESET_CATEGORIES[index]
    return UNKNOWN_CATEGORY
