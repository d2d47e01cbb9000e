import logging
import re
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel


logger = logging.getLogger(__name__)

DEFAULT_SECTION = "Menu"
SALAD_SECTION = "Salad"

CURRENCY_SYMBOLS = "₦$€£¥"
PRICE_TOKEN = rf"[{CURRENCY_SYMBOLS}]\s*[\d,]+(?:\.\d{{2}})?"

STANDALONE_PRICE_RE = re.compile(rf"^({PRICE_TOKEN})$")
SAME_LINE_PRICE_RE = re.compile(rf"^(.+?)\s*[-–—]?\s*({PRICE_TOKEN})$")
PAREN_PRICE_RE = re.compile(rf"^(.+?)\s*\(({PRICE_TOKEN})\)$")
BARE_DECIMAL_RE = re.compile(r"^\$?(\d+(?:\.\d{2})?)$")
PRICE_PARTS_RE = re.compile(rf"^([{CURRENCY_SYMBOLS}])\s*([\d,]+(?:\.\d{{2}})?)$")

DIVIDER_RE = re.compile(rf"^[\d\s\-–—_=*#{CURRENCY_SYMBOLS}.,:;]+$")
INLINE_PRICE_RE = re.compile(rf"[{CURRENCY_SYMBOLS}]\s*\d")
ATTACHED_PRICE_RE = re.compile(rf"[{CURRENCY_SYMBOLS}]\d")
CURRENCY_RE = re.compile(rf"[{CURRENCY_SYMBOLS}]")
TRAILING_DASH_RE = re.compile(r"\s*[-–—]\s*$")
WORD_START_RE = re.compile(r"(^|[ \t\r\n\f\v])(\S)")

HEADER_MIN_LENGTH = 2
HEADER_MAX_LENGTH = 25
MIN_LINE_LENGTH = 2
MIN_NAME_LENGTH = 3
SHORT_DESCRIPTION_LENGTH = 15


@dataclass(frozen=True)
class MenuVocabulary:
    """Keyword lists driving line classification.

    Matching is done against the lowercased line, so every entry must be
    lowercase.
    """

    noise_patterns: Tuple[str, ...]
    category_keywords: FrozenSet[str]
    description_markers: Tuple[str, ...]
    salad_keywords: Tuple[str, ...]


DEFAULT_VOCABULARY = MenuVocabulary(
    noise_patterns=(
        "powered by", "signmenu", "menu by", "copyright", "©",
        "all rights reserved", "www.", "http", ".com", ".net", ".org",
        "follow us", "like us", "visit us", "call us", "order online",
        "delivery available", "page ", "continued",
    ),
    category_keywords=frozenset({
        "breakfast", "lunch", "dinner", "brunch", "appetizers", "starters",
        "entrees", "mains", "main course", "desserts", "sweets", "pastries",
        "drinks", "beverages", "juice", "juices", "smoothies", "salad",
        "salads", "soup", "soups", "burger", "burgers", "sandwich",
        "sandwiches", "pizza", "pizzas", "pasta", "pastas", "seafood", "fish",
        "chicken", "beef", "pork", "lamb", "vegetarian", "vegan", "sides",
        "side dishes", "specials", "daily specials", "chef's specials",
        "combo", "combos", "meals", "kids menu", "children", "coffee", "tea",
        "hot drinks", "cold drinks", "soft drinks", "alcoholic", "wine",
        "beer", "cocktails",
    }),
    description_markers=(
        "with", "and", "or", "served with", "includes", "topped with",
        "side of", "choice of", "comes with", "extra", "add", "grilled",
        "fried", "baked", "steamed",
    ),
    salad_keywords=("salad", "caesar", "greek", "garden", "cobb", "coleslaw"),
)


class Price(BaseModel):
    symbol: str
    amount: str
    raw: str

    class Config:
        frozen = True

    @classmethod
    def from_token(cls, token: str) -> Optional["Price"]:
        match = PRICE_PARTS_RE.match(token.strip())
        if not match:
            return None
        return cls(symbol=match.group(1), amount=match.group(2), raw=token)

    def decimal(self) -> Optional[Decimal]:
        try:
            return Decimal(self.amount.replace(",", ""))
        except InvalidOperation:
            return None


class MenuItem(BaseModel):
    name: str
    price: str = ""

    class Config:
        frozen = True

    @property
    def price_value(self) -> Optional[Price]:
        return Price.from_token(self.price) if self.price else None


StructuredMenu = Dict[str, List[Dict[str, str]]]


@dataclass(frozen=True)
class ItemRef:
    section: str
    index: int


@dataclass(frozen=True)
class ParserState:
    """Parser state between two lines.

    Every transition returns a new state; ``sections`` and its item tuples
    are never mutated in place.
    """

    current_section: str = DEFAULT_SECTION
    sections: Dict[str, Tuple[MenuItem, ...]] = field(default_factory=dict)
    last_item: Optional[ItemRef] = None

    def enter_section(self, name: str) -> "ParserState":
        sections = self.sections
        if name not in sections:
            sections = {**sections, name: ()}
        return replace(self, current_section=name, sections=sections)

    def forget_last_item(self) -> "ParserState":
        return replace(self, last_item=None)

    def add_item(self, item: MenuItem) -> "ParserState":
        items = self.sections.get(self.current_section, ()) + (item,)
        return replace(
            self,
            sections={**self.sections, self.current_section: items},
            last_item=ItemRef(self.current_section, len(items) - 1),
        )

    def get_last_item(self) -> Optional[MenuItem]:
        if self.last_item is None:
            return None
        return self.sections[self.last_item.section][self.last_item.index]

    def update_last_item(self, **changes) -> "ParserState":
        ref = self.last_item
        items = list(self.sections[ref.section])
        items[ref.index] = items[ref.index].model_copy(update=changes)
        return replace(self, sections={**self.sections, ref.section: tuple(items)})

    def to_structured_menu(self) -> StructuredMenu:
        if not self.sections:
            return {DEFAULT_SECTION: []}
        return {
            name: [item.model_dump() for item in items]
            for name, items in self.sections.items()
        }


def split_lines(text: str) -> List[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


def title_case(line: str) -> str:
    """Uppercase the first letter of every whitespace-separated word."""
    return WORD_START_RE.sub(lambda m: m.group(1) + m.group(2).upper(), line)


def section_name(line: str) -> str:
    return title_case(line.strip().lower())


def is_standalone_price(line: Optional[str]) -> bool:
    return line is not None and STANDALONE_PRICE_RE.match(line) is not None


def is_noise(line: str, vocabulary: MenuVocabulary = DEFAULT_VOCABULARY) -> bool:
    if len(line) < MIN_LINE_LENGTH:
        return True
    lower = line.lower()
    if any(pattern in lower for pattern in vocabulary.noise_patterns):
        return True
    return DIVIDER_RE.match(line) is not None


def is_salad_item(line: str, vocabulary: MenuVocabulary = DEFAULT_VOCABULARY) -> bool:
    lower = line.lower()
    return any(keyword in lower for keyword in vocabulary.salad_keywords)


def _is_all_caps(line: str) -> bool:
    letters = line.replace(" ", "")
    return letters.isalpha() and letters.isupper()


def is_section_header(line: str, next_line: Optional[str] = None,
                      vocabulary: MenuVocabulary = DEFAULT_VOCABULARY) -> bool:
    lower = line.lower()
    is_keyword = lower.rstrip() in vocabulary.category_keywords
    looks_like_title = (
        HEADER_MIN_LENGTH <= len(line) <= HEADER_MAX_LENGTH
        and not INLINE_PRICE_RE.search(line)
        and (_is_all_caps(line) or title_case(lower) == line)
    )
    if not (is_keyword or looks_like_title):
        return False
    # A title followed by a lone price is an item name.
    return not is_standalone_price(next_line)


def looks_like_description(line: str, vocabulary: MenuVocabulary = DEFAULT_VOCABULARY) -> bool:
    lower = line.lower()
    if any(marker in lower for marker in vocabulary.description_markers):
        return True
    return len(line) < SHORT_DESCRIPTION_LENGTH and not CURRENCY_RE.search(line)


def is_valid_item_name(name: str, vocabulary: MenuVocabulary = DEFAULT_VOCABULARY) -> bool:
    if len(name) < MIN_NAME_LENGTH:
        return False
    lower = name.lower()
    if "powered by" in lower or "signmenu" in lower:
        return False
    return DIVIDER_RE.match(name) is None


def extract_item(line: str, next_line: Optional[str] = None) -> Tuple[str, str, int]:
    """Split a line into ``(name, price, lines_consumed)``.

    The price is looked for on the same line, in trailing parentheses, and
    finally on the next line, which is then consumed as well.
    """
    consumed = 1
    match = SAME_LINE_PRICE_RE.match(line) or PAREN_PRICE_RE.match(line)
    if match:
        name, price = match.group(1).strip(), match.group(2).strip()
    else:
        name, price = line, ""
        if is_standalone_price(next_line):
            price = next_line
            consumed += 1
        elif next_line is not None:
            bare = BARE_DECIMAL_RE.match(next_line)
            if bare:
                # unlabeled amounts are assumed to be dollars
                price = "$" + bare.group(1)
                consumed += 1
    name = TRAILING_DASH_RE.sub("", name).strip()
    return name, price, consumed


def classify_and_apply(state: ParserState, line: str, next_line: Optional[str] = None,
                       vocabulary: MenuVocabulary = DEFAULT_VOCABULARY) -> Tuple[ParserState, int]:
    """Apply the first matching rule for ``line``.

    Returns the new state and how many lines were consumed.
    """
    if is_noise(line, vocabulary):
        return state, 1

    if is_salad_item(line, vocabulary):
        state = state.enter_section(SALAD_SECTION)

    if is_section_header(line, next_line, vocabulary):
        name = section_name(line)
        logger.debug("New section detected: %s", name)
        return state.enter_section(name).forget_last_item(), 1

    if is_standalone_price(line):
        if state.last_item is not None:
            state = state.update_last_item(price=line)
        return state, 1

    if (state.last_item is not None
            and not ATTACHED_PRICE_RE.search(line)
            and not is_standalone_price(next_line)
            and looks_like_description(line, vocabulary)):
        last = state.get_last_item()
        return state.update_last_item(name=f"{last.name} - {line}"), 1

    name, price, consumed = extract_item(line, next_line)
    if not is_valid_item_name(name, vocabulary):
        return state, consumed
    return state.add_item(MenuItem(name=name, price=price)), consumed


def is_price_candidate(line: str) -> bool:
    return is_standalone_price(line) or BARE_DECIMAL_RE.match(line) is not None


def look_ahead_indices(lines: List[str],
                       vocabulary: MenuVocabulary = DEFAULT_VOCABULARY) -> List[int]:
    """For every position ``i``, the index of the first line at or after ``i``
    worth peeking at, or ``len(lines)`` when there is none.

    Noise lines are skipped unless they could be a price for the line before
    them; price lines match the divider class and would otherwise be lost.
    """
    indices = [len(lines)] * (len(lines) + 1)
    for i in range(len(lines) - 1, -1, -1):
        line = lines[i]
        if is_noise(line, vocabulary) and not is_price_candidate(line):
            indices[i] = indices[i + 1]
        else:
            indices[i] = i
    return indices


def parse_menu_text(text: str, vocabulary: MenuVocabulary = DEFAULT_VOCABULARY) -> StructuredMenu:
    lines = split_lines(text)
    logger.info("Starting menu parsing: %d characters, %d lines", len(text), len(lines))

    look_ahead = look_ahead_indices(lines, vocabulary)
    state = ParserState()
    i = 0
    while i < len(lines):
        j = look_ahead[i + 1]
        next_line = lines[j] if j < len(lines) else None
        state, consumed = classify_and_apply(state, lines[i], next_line, vocabulary)
        i = j + 1 if consumed > 1 else i + 1

    menu = state.to_structured_menu()
    logger.info(
        "Menu parsing complete: %d sections, %d items",
        len(menu), sum(len(items) for items in menu.values()),
    )
    return menu
