"""
Full-document behaviour of parse_menu_text().

Covers same-line / next-line / parenthesised prices, section headers,
description merging, salad auto-sectioning, noise and divider handling.
"""

import json
import time
from dataclasses import replace

import pytest

from menu_parser import DEFAULT_VOCABULARY, parse_menu_text


def test_same_line_price():
    assert parse_menu_text("Cheeseburger $8.50") == {
        "Menu": [{"name": "Cheeseburger", "price": "$8.50"}]
    }


def test_next_line_price():
    assert parse_menu_text("Cheeseburger\n$8.50") == parse_menu_text("Cheeseburger $8.50")


def test_section_headers_are_title_cased_in_first_seen_order():
    menu = parse_menu_text("APPETIZERS\nSpring Rolls $5.00\nMAINS\nSteak $20.00")

    assert list(menu) == ["Appetizers", "Mains"]
    assert menu["Appetizers"] == [{"name": "Spring Rolls", "price": "$5.00"}]
    assert menu["Mains"] == [{"name": "Steak", "price": "$20.00"}]


def test_revisited_section_keeps_its_position():
    text = "DRINKS\nZobo $2.00\nDESSERTS\nPuff puff $1.50\nDRINKS\nChapman $3.00"
    menu = parse_menu_text(text)

    assert list(menu) == ["Drinks", "Desserts"]
    assert [item["name"] for item in menu["Drinks"]] == ["Zobo", "Chapman"]


def test_description_is_merged_into_previous_item():
    menu = parse_menu_text("Grilled Salmon $15.00\nserved with lemon butter")

    assert menu == {
        "Menu": [{"name": "Grilled Salmon - served with lemon butter", "price": "$15.00"}]
    }


def test_short_line_is_treated_as_description():
    menu = parse_menu_text("Fish Tacos $11.00\nlime crema")

    assert menu["Menu"] == [{"name": "Fish Tacos - lime crema", "price": "$11.00"}]


def test_line_followed_by_price_starts_new_item_instead_of_description():
    menu = parse_menu_text("Fish Tacos $11.00\nserved with rice\n$4.00")

    assert menu["Menu"] == [
        {"name": "Fish Tacos", "price": "$11.00"},
        {"name": "served with rice", "price": "$4.00"},
    ]


def test_salad_item_goes_to_salad_section():
    assert parse_menu_text("Caesar Salad $9.00") == {
        "Salad": [{"name": "Caesar Salad", "price": "$9.00"}]
    }


def test_salad_section_stays_current_for_following_items():
    menu = parse_menu_text("Garden Salad $7.00\nClub Sandwich $9.00")

    assert list(menu) == ["Salad"]
    assert len(menu["Salad"]) == 2


def test_parenthesised_price():
    menu = parse_menu_text("Jollof Rice (₦1,500)")

    assert menu == {"Menu": [{"name": "Jollof Rice", "price": "₦1,500"}]}


def test_dash_separated_price():
    menu = parse_menu_text("Beef Suya – ₦2,000")

    assert menu == {"Menu": [{"name": "Beef Suya", "price": "₦2,000"}]}


def test_trailing_dash_is_stripped_from_name():
    menu = parse_menu_text("Pepper Soup -\n$5.00")

    assert menu == {"Menu": [{"name": "Pepper Soup", "price": "$5.00"}]}


def test_bare_decimal_on_next_line_becomes_dollar_price():
    menu = parse_menu_text("Fried plantain with pepper sauce\n12.50")

    assert menu == {"Menu": [{"name": "Fried plantain with pepper sauce", "price": "$12.50"}]}


def test_item_without_price_keeps_empty_price():
    menu = parse_menu_text("Rice and stew of the day")

    assert menu == {"Menu": [{"name": "Rice and stew of the day", "price": ""}]}


def test_keyword_header_with_apostrophe():
    menu = parse_menu_text("CHEF'S SPECIALS\nPepper soup with goat meat ₦3,000")

    assert menu == {
        "Chef's Specials": [{"name": "Pepper soup with goat meat", "price": "₦3,000"}]
    }


def test_header_without_items_is_kept():
    assert parse_menu_text("LUNCH") == {"Lunch": []}


def test_price_line_after_priced_item_is_divider_noise():
    menu = parse_menu_text("Small Chops $5.00\n$6.00")

    assert menu == {"Menu": [{"name": "Small Chops", "price": "$5.00"}]}


@pytest.mark.parametrize("text", ["", "   ", "\n\n\n", "x\n-\n*"])
def test_empty_input_yields_default_section(text):
    assert parse_menu_text(text) == {"Menu": []}


@pytest.mark.parametrize("divider", ["------", "=====", "12345", "1 - 2", "***", "$$$"])
def test_divider_lines_never_become_items(divider):
    menu = parse_menu_text(f"{divider}\nMoi moi with egg $2.50\n{divider}")

    assert menu == {"Menu": [{"name": "Moi moi with egg", "price": "$2.50"}]}


@pytest.mark.parametrize("boilerplate", [
    "www.mamaput.com",
    "Follow us on Instagram",
    "Copyright 2024 Mama Put",
    "Page 2",
    "Menu by SignMenu",
])
def test_boilerplate_lines_are_ignored(boilerplate):
    menu = parse_menu_text(f"{boilerplate}\nAsun $6.00")

    assert menu == {"Menu": [{"name": "Asun", "price": "$6.00"}]}


NOISE_BASE = [
    "APPETIZERS",
    "Spring Rolls $5.00",
    "Cheeseburger",
    "$8.50",
    "MAINS",
    "Steak $20.00",
]


@pytest.mark.parametrize("position", range(len(NOISE_BASE) + 1))
def test_powered_by_line_never_alters_the_parse(position):
    expected = parse_menu_text("\n".join(NOISE_BASE))
    lines = NOISE_BASE[:position] + ["Powered by SignMenu"] + NOISE_BASE[position:]

    assert parse_menu_text("\n".join(lines)) == expected


def test_noise_base_document():
    assert parse_menu_text("\n".join(NOISE_BASE)) == {
        "Appetizers": [
            {"name": "Spring Rolls", "price": "$5.00"},
            {"name": "Cheeseburger", "price": "$8.50"},
        ],
        "Mains": [{"name": "Steak", "price": "$20.00"}],
    }


def test_parse_is_idempotent():
    text = (
        "BREAKFAST\n"
        "Akara and pap $3.00\n"
        "with extra pepper\n"
        "Greek Salad (€7.50)\n"
        "DRINKS\n"
        "Chapman\n"
        "£4.00\n"
    )
    first = parse_menu_text(text)
    second = parse_menu_text(text)

    assert first == second
    assert json.dumps(first, ensure_ascii=False) == json.dumps(second, ensure_ascii=False)


def test_windows_line_endings():
    menu = parse_menu_text("MAINS\r\nSteak $20.00\r\n")

    assert menu == {"Mains": [{"name": "Steak", "price": "$20.00"}]}


def test_injected_vocabulary_extends_noise_patterns():
    text = "Scan the QR code\nAsun $6.00"
    vocabulary = replace(
        DEFAULT_VOCABULARY,
        noise_patterns=DEFAULT_VOCABULARY.noise_patterns + ("qr code",),
    )

    assert parse_menu_text(text)["Menu"][0]["name"] == "Scan the QR code"
    assert parse_menu_text(text, vocabulary) == {"Menu": [{"name": "Asun", "price": "$6.00"}]}


# ── Long documents ──────────────────────────────────

def test_long_divider_run_parses_in_linear_time():
    text = "Suya $5.00\n" + "\n".join(["------"] * 5000) + "\nZobo $2.00"

    started = time.perf_counter()
    menu = parse_menu_text(text)
    elapsed = time.perf_counter() - started

    assert menu == {"Menu": [
        {"name": "Suya", "price": "$5.00"},
        {"name": "Zobo", "price": "$2.00"},
    ]}
    assert elapsed < 1.0


def test_noise_between_name_and_next_line_price():
    text = "Cheeseburger\n------\nPage 2\nPowered by SignMenu\n$8.50"

    assert parse_menu_text(text) == {"Menu": [{"name": "Cheeseburger", "price": "$8.50"}]}


def test_parsing_resumes_after_price_found_past_noise():
    text = "Cheeseburger\n======\n$8.50\nFries $3.00"

    assert parse_menu_text(text) == {"Menu": [
        {"name": "Cheeseburger", "price": "$8.50"},
        {"name": "Fries", "price": "$3.00"},
    ]}
